"""Service configuration, read from the environment (and a ``.env`` file).

There is no configuration file format; every knob is an environment
variable. Secrets are never given defaults.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    openai_api_key: Optional[str] = None
    openai_base_url: str = 'https://api.openai.com/v1'
    model_timeout: float = Field(default=120.0, gt=0, description='Per-request model timeout in seconds')
    intent_model: str = 'gpt-4o-mini'
    code_model: str = 'gpt-4o'

    port: int = Field(default=3000, ge=1, le=65535)

    azure_storage_connection_string: Optional[str] = None
    azure_container: str = '$web'
    static_site_url: Optional[str] = None
    deploy_strategy: str = Field(default='wipe', pattern='^(wipe|diff)$')

    project_dir: str = 'generated-site'
    frontend_dir: str = 'frontend'
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, dotenv: bool = True) -> 'Settings':
        """Build Settings from environment variables.

        Recognised variables (all optional):
            OPENAI_API_KEY, OPENAI_BASE_URL, MODEL_TIMEOUT, INTENT_MODEL,
            CODE_MODEL, PORT, AZURE_STORAGE_CONNECTION_STRING, AZURE_CONTAINER,
            STATIC_SITE_URL, DEPLOY_STRATEGY, PROJECT_DIR, FRONTEND_DIR,
            LOG_LEVEL.
        """
        if dotenv:
            load_dotenv()
        kwargs = {}
        for field in cls.model_fields:
            value = os.environ.get(field.upper())
            if value:
                kwargs[field] = value
        return cls(**kwargs)
