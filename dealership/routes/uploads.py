"""
Image upload handling shared by the analysis routes.
"""
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from ..results import Result
from ..services import Services
from ..vision import analyze_car_image


async def read_image(image: UploadFile, max_bytes: int) -> bytes:
    """
    Read at most ``max_bytes + 1`` bytes of an upload.

    An oversized upload comes back one byte over the limit, which the size check rejects.
    """
    return await image.read(max_bytes + 1)


async def analyze_upload(services: Services, image: UploadFile) -> Result:
    """Run image analysis in the threadpool; the Gemini SDK call is blocking."""
    data = await read_image(image, services.max_image_bytes)
    return await run_in_threadpool(analyze_car_image, services, data, image.content_type or "")
