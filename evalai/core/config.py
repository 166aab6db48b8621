# evalai/core/config.py
import os
from dotenv import load_dotenv

# .env 파일 로드
load_dotenv()

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PDF_MEDIA_TYPE = "application/pdf"


class Settings:
    AZURE_OPENAI_ENDPOINT: str = os.getenv("AZURE_OPENAI_ENDPOINT", "")
    AZURE_OPENAI_API_KEY: str = os.getenv("AZURE_OPENAI_API_KEY", "")
    AZURE_OPENAI_DEPLOYMENT: str = os.getenv("AZURE_OPENAI_DEPLOYMENT", "")
    AZURE_OPENAI_API_VERSION: str = os.getenv("AZURE_OPENAI_API_VERSION", "2025-04-01-preview")
    API_TIMEOUT_S: float = float(os.getenv("API_TIMEOUT_S", "60.0"))

    # Retry policy for the model endpoint
    MODEL_MAX_RETRIES: int = int(os.getenv("MODEL_MAX_RETRIES", "3"))
    MODEL_INITIAL_DELAY_MS: int = int(os.getenv("MODEL_INITIAL_DELAY_MS", "1000"))
    # 0 disables the deadline
    EVALUATION_DEADLINE_S: float = float(os.getenv("EVALUATION_DEADLINE_S", "120.0"))

    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    # Single-field ceiling of the hosted document store
    STORE_FIELD_BYTE_LIMIT: int = int(os.getenv("STORE_FIELD_BYTE_LIMIT", "1048487"))

    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "memory")
    FIRESTORE_COLLECTION: str = os.getenv("FIRESTORE_COLLECTION", "submissions")
    GOOGLE_SERVICE_ACCOUNT_KEY: str = os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY", "")

    CORS_ORIGINS: list[str] = [
        o.strip()
        for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
        if o.strip()
    ]
    SLOW_REQUEST_MS: float = float(os.getenv("SLOW_REQUEST_MS", "2000"))
    APP_VERSION: str = "6.0.0"


settings = Settings()
