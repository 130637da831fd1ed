import os
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from .parser import DEFAULT_CUTOFF_DATE


class Settings(BaseModel):
    cutoff_date: date = DEFAULT_CUTOFF_DATE
    groq_api_key: Optional[str] = None
    groq_model: str = "llama-3.3-70b-versatile"
    groq_transcription_model: str = "whisper-large-v3"
    log_level: str = Field(default="INFO")

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "cutoff_date": os.getenv("AUDIT_CUTOFF_DATE"),
            "groq_api_key": os.getenv("GROQ_API_KEY"),
            "groq_model": os.getenv("GROQ_MODEL"),
            "groq_transcription_model": os.getenv("GROQ_TRANSCRIPTION_MODEL"),
            "log_level": os.getenv("AUDIT_LOG_LEVEL"),
        }
        return cls(**{k: v for k, v in values.items() if v})
