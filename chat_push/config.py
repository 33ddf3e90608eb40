from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration settings for the chat push notifier"""

    # Application settings
    service_name: str = "chat-push"
    log_level: str = "INFO"
    log_json: bool = True
    environment: str = "dev"

    # Firebase settings
    firebase_secret: Optional[str] = None
    firebase_credentials_path: Optional[str] = None
    firebase_db_url: Optional[str] = None

    # Firestore collections
    chats_collection: str = "chats"
    messages_collection: str = "messages"
    created_at_field: str = "createdAt"  # listener only sees messages carrying it
    profile_collections: List[str] = ["clients", "coaches"]  # checked in order

    # Notification settings
    default_notification_title: str = "New message"
    deduplicate_tokens: bool = True

    # FCM batching settings
    fcm_batch_size: int = Field(500, ge=1, le=500)  # FCM allows up to 500 tokens per multicast request

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


# Create settings instance
settings = Settings()
