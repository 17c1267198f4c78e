"""
Core settings and environment variables for Clean City API.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Clean City API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API (comma separated)
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173"

    # Firebase (Firestore, Storage, Auth)
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON
    FIREBASE_STORAGE_BUCKET: Optional[str] = None
    COMPLAINTS_COLLECTION: str = "complaints"
    SIGNED_URL_EXPIRY_HOURS: int = 24
    STORE_TIMEOUT_SECONDS: float = 10.0  # Firestore reads/writes and bucket transfers

    # Mock backends for local development and tests without Firebase credentials
    USE_MOCK_DB: bool = False
    MOCK_DB_PATH: Optional[str] = None  # Optional JSON file to persist the mock DB

    # Evidence pipeline: exactly one is authoritative per deployment
    # - "label_object": image labels + object localization, fused and scored with history boost
    # - "ai_verdict": single structured verdict from a reasoning model
    EVIDENCE_PIPELINE: str = "label_object"

    # Detection (label/object pipeline)
    DETECTION_PROVIDER: str = "google_vision"  # "google_vision" or "mock"
    DETECTION_TIMEOUT_SECONDS: float = 10.0

    # Reasoning model (AI verdict pipeline)
    AI_ENABLED: bool = True
    AI_PROVIDER: str = "gemini"  # "gemini", "openai" or "mock"
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    AI_TIMEOUT_SECONDS: float = 10.0

    # Geocoding (address resolution on submission)
    # - GEOCODING_PROVIDER: "nominatim" (default, no API key) or "google"
    # - GOOGLE_MAPS_API_KEY: only used when provider is "google"
    GEOCODING_ENABLED: bool = True
    GEOCODING_PROVIDER: str = "nominatim"
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    GEOCODING_TIMEOUT_SECONDS: float = 3.0
    GEOCODING_USER_AGENT: str = "clean-city-api/1.0"

    # Listing
    ADMIN_LIST_LIMIT: int = 50

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
