import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Settings:
    # Data file settings
    data_dir: str = os.getenv("LIBRARY_DATA_DIR", "library_data")
    catalog_file: str = os.getenv("LIBRARY_CATALOG_FILE", "library.dat")
    users_file: str = os.getenv("LIBRARY_USERS_FILE", "users.txt")
    seed_file: str = os.getenv("LIBRARY_SEED_FILE", "books.txt")  # legacy id;title;author import

    # Built-in admin account (checked before the roster)
    admin_username: str = os.getenv("ADMIN_USERNAME", "admin")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "admin123")

    # Logging settings
    log_level: str = os.getenv("LOG_LEVEL", "WARNING")
    log_file: Optional[str] = os.getenv("LOG_FILE")

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Management System")


settings = Settings()
