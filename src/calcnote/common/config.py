"""Application settings read from environment variables (prefix CALCNOTE_)."""
import base64
import binascii
from multiprocessing import cpu_count
from typing import Optional

from pydantic import Field, IPvAnyAddress
from pydantic_settings import BaseSettings, SettingsConfigDict

# AES-128, AES-192 and AES-256
AES_KEY_SIZES = (16, 24, 32)


class Settings(BaseSettings):
    """Runtime configuration of the batch service and the note vault."""

    host: IPvAnyAddress = Field(default="127.0.0.1", validate_default=True, description="Server host address")
    port: int = Field(default=9000, ge=1, le=65535, description="Server TCP port")
    max_workers: int = Field(default_factory=cpu_count, ge=1, description="Maximum concurrent worker processes")
    log_level: str = Field(default="INFO", description="Logging level name")
    enc_key_b64: Optional[str] = Field(default=None, description="Base64 encoded AES key for notes")

    model_config = SettingsConfigDict(env_prefix="CALCNOTE_", env_file=".env", extra="ignore")

    def encryption_key(self) -> bytes:
        """
        Decode the note encryption key.

        :return: Raw AES key
        :rtype: bytes
        :raises ValueError: If the key is missing, not base64 or has an invalid length
        """
        if not self.enc_key_b64 or not self.enc_key_b64.strip():
            raise ValueError("CALCNOTE_ENC_KEY_B64 is not set")
        try:
            key = base64.b64decode(self.enc_key_b64.strip(), validate=True)
        except binascii.Error as exc:
            raise ValueError(f"CALCNOTE_ENC_KEY_B64 is not valid base64: {exc}") from exc
        if len(key) not in AES_KEY_SIZES:
            raise ValueError(
                f"CALCNOTE_ENC_KEY_B64 must decode to {AES_KEY_SIZES} bytes, got {len(key)}"
            )
        return key
