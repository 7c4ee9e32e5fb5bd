# src/guildhall/init_db.py
"""Create the database schema from the ORM metadata."""

from guildhall.db.session import create_tables


def init_db() -> None:
    """Initialize the database by creating all tables."""
    create_tables()


if __name__ == "__main__":
    init_db()
    print("Database initialized.")
