"""
Database operations and connection management.
"""
import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from .models import Car
from .search import CarSearch, build_where_clause
from .utils import now_iso

logger = logging.getLogger(__name__)


# Schema definitions
DDL_USERS = """
CREATE TABLE IF NOT EXISTS users (
  id TEXT PRIMARY KEY,
  clerk_user_id TEXT NOT NULL UNIQUE,
  email TEXT NOT NULL,
  name TEXT,
  image_url TEXT,
  created_at TEXT,
  updated_at TEXT
);
"""

DDL_CARS = """
CREATE TABLE IF NOT EXISTS cars (
  id TEXT PRIMARY KEY,
  make TEXT NOT NULL,
  model TEXT NOT NULL,
  year INTEGER NOT NULL,
  price REAL NOT NULL,
  mileage INTEGER NOT NULL,
  color TEXT NOT NULL,
  fuel_type TEXT NOT NULL,
  transmission TEXT NOT NULL,
  body_type TEXT NOT NULL,
  seats INTEGER,
  description TEXT,
  status TEXT NOT NULL DEFAULT 'AVAILABLE',
  featured INTEGER NOT NULL DEFAULT 0,
  images TEXT NOT NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
"""

DDL_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_cars_created_at ON cars(created_at);",
    "CREATE INDEX IF NOT EXISTS idx_cars_make ON cars(make);",
    "CREATE INDEX IF NOT EXISTS idx_cars_status ON cars(status);",
]


def _casefold(value):
    # SQLite's lower() only folds ASCII
    return value.casefold() if isinstance(value, str) else value


@contextmanager
def get_db_connection(db_path: str):
    """Get a database connection with proper error handling."""
    conn = None
    try:
        if not db_path:
            raise ValueError("Database path not configured")

        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        yield conn
    except sqlite3.Error as e:
        logger.error(f"Database error: {e}")
        raise
    finally:
        if conn is not None:
            conn.close()


def db_init(db_path: str) -> None:
    """Create the database file and schema if missing."""
    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with get_db_connection(db_path) as conn:
        conn.execute(DDL_USERS)
        conn.execute(DDL_CARS)
        for ddl in DDL_INDEXES:
            conn.execute(ddl)
        conn.commit()


def row_to_car(row: sqlite3.Row) -> Dict[str, Any]:
    """Convert a cars row to a dictionary with decoded images and flags."""
    car = dict(row)
    car["images"] = json.loads(car["images"]) if car.get("images") else []
    car["featured"] = bool(car.get("featured"))
    return car


# Users

def db_get_user_by_clerk_id(conn: sqlite3.Connection, clerk_user_id: str) -> Optional[Dict]:
    """Resolve an identity-provider user id to the internal user row."""
    row = conn.execute("SELECT * FROM users WHERE clerk_user_id = ?", (clerk_user_id,)).fetchone()
    return dict(row) if row else None


def db_upsert_user(conn: sqlite3.Connection, user_id: str, clerk_user_id: str, email: str,
                   name: Optional[str], image_url: Optional[str]) -> Dict:
    """Insert a user or refresh the profile of an existing one."""
    ts = now_iso()
    conn.execute("""
    INSERT INTO users (id, clerk_user_id, email, name, image_url, created_at, updated_at)
    VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(clerk_user_id) DO UPDATE SET
      email=excluded.email, name=excluded.name, image_url=excluded.image_url, updated_at=excluded.updated_at
    """, (user_id, clerk_user_id, email, name, image_url, ts, ts))
    conn.commit()
    return db_get_user_by_clerk_id(conn, clerk_user_id)


# Cars

def db_insert_car(conn: sqlite3.Connection, car: Car) -> None:
    """Insert new car into database."""
    ts = now_iso()
    conn.execute("""
    INSERT INTO cars (
      id,make,model,year,price,mileage,color,fuel_type,transmission,body_type,
      seats,description,status,featured,images,created_at,updated_at
    ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
    """, (
        car.id, car.make, car.model, car.year, car.price, car.mileage, car.color,
        car.fuel_type, car.transmission, car.body_type, car.seats, car.description,
        car.status.value, int(car.featured), json.dumps(car.images),
        car.created_at or ts, car.updated_at or ts
    ))
    conn.commit()


def db_get_car(conn: sqlite3.Connection, car_id: str) -> Optional[Dict]:
    """Get a single car by ID."""
    row = conn.execute("SELECT * FROM cars WHERE id = ?", (car_id,)).fetchone()
    return row_to_car(row) if row else None


def db_list_cars(conn: sqlite3.Connection, search: CarSearch) -> List[Dict]:
    """Get cars matching a search, newest first."""
    where_clause, parameters = build_where_clause(search)
    sql = f"SELECT * FROM cars{where_clause} ORDER BY created_at DESC, rowid DESC"
    return [row_to_car(row) for row in conn.execute(sql, parameters).fetchall()]


def db_delete_car(conn: sqlite3.Connection, car_id: str) -> bool:
    """Delete a car row. Returns False when no row matched."""
    cur = conn.execute("DELETE FROM cars WHERE id = ?", (car_id,))
    conn.commit()
    return cur.rowcount > 0


def db_update_car(conn: sqlite3.Connection, car_id: str, updates: Dict[str, Any]) -> bool:
    """Apply a partial update. Returns False when no row matched."""
    assignments = [f"{column} = ?" for column in updates]
    parameters = list(updates.values())
    assignments.append("updated_at = ?")
    parameters.extend([now_iso(), car_id])

    cur = conn.execute(f"UPDATE cars SET {', '.join(assignments)} WHERE id = ?", parameters)
    conn.commit()
    return cur.rowcount > 0


def get_statistics(conn: sqlite3.Connection) -> Dict[str, Any]:
    """Get various statistics about the inventory."""
    total_cars = conn.execute("SELECT COUNT(*) FROM cars").fetchone()[0]
    featured_cars = conn.execute("SELECT COUNT(*) FROM cars WHERE featured = 1").fetchone()[0]

    # Price statistics
    price_stats = conn.execute("SELECT MIN(price), MAX(price), AVG(price) FROM cars").fetchone()
    min_price, max_price, avg_price = price_stats if price_stats else (None, None, None)

    status_stats = conn.execute(
        "SELECT status, COUNT(*) FROM cars GROUP BY status ORDER BY COUNT(*) DESC"
    ).fetchall()

    # Make statistics
    make_stats = conn.execute(
        "SELECT make, COUNT(*) FROM cars GROUP BY make ORDER BY COUNT(*) DESC LIMIT 20"
    ).fetchall()

    return {
        "total_cars": total_cars,
        "featured_cars": featured_cars,
        "min_price": min_price,
        "max_price": max_price,
        "avg_price": avg_price,
        "by_status": {status: count for status, count in status_stats},
        "by_make": {make: count for make, count in make_stats},
    }
