import os


class Settings:
    # Default LLM endpoint, OpenRouter's public API
    DEFAULT_LLM_BASE_URL = "https://openrouter.ai/api/v1"
    DEFAULT_LLM_MODEL = "openai/gpt-4o-mini"
    # Placeholder so a fresh checkout starts; never deploy with it
    DEFAULT_JWT_SECRET = "change-me"

    def __init__(self):
        default_db = os.path.abspath(os.path.join(os.path.dirname(__file__), "../data/ai_assistant.db"))
        self._database_url = os.environ.get("DATABASE_URL", f"sqlite:///{default_db}")
        self._jwt_secret = os.environ.get("JWT_SECRET", self.DEFAULT_JWT_SECRET)
        self._jwt_expires_in = int(os.environ.get("JWT_EXPIRES_IN", "3600"))
        self._llm_base_url = os.environ.get("LLM_BASE_URL", self.DEFAULT_LLM_BASE_URL).rstrip("/")
        self._llm_api_key = os.environ.get("LLM_API_KEY", "")
        self._llm_model = os.environ.get("LLM_MODEL", self.DEFAULT_LLM_MODEL)
        self._llm_timeout = float(os.environ.get("LLM_TIMEOUT", "60"))
        self._ai_instructions = os.environ.get("AI_INSTRUCTIONS", "")
        self._append_max_attempts = int(os.environ.get("APPEND_MAX_ATTEMPTS", "5"))
        origins = os.environ.get("CORS_ORIGINS", "*")
        self._cors_origins = [o.strip() for o in origins.split(",") if o.strip()]

    def get_database_url(self) -> str:
        return self._database_url

    def get_jwt_secret(self) -> str:
        return self._jwt_secret

    def uses_default_jwt_secret(self) -> bool:
        return self._jwt_secret == self.DEFAULT_JWT_SECRET

    def get_jwt_expires_in(self) -> int:
        """Token lifetime in seconds."""
        return self._jwt_expires_in

    def get_llm_base_url(self) -> str:
        """Returns the base URL for the LLM API (e.g. 'https://openrouter.ai/api/v1')."""
        return self._llm_base_url

    def get_llm_api_key(self) -> str:
        return self._llm_api_key

    def get_llm_model(self) -> str:
        return self._llm_model

    def get_llm_timeout(self) -> float:
        return self._llm_timeout

    def get_ai_instructions(self) -> str:
        """System instructions prepended to every model call, empty for none."""
        return self._ai_instructions

    def get_append_max_attempts(self) -> int:
        return self._append_max_attempts

    def get_cors_origins(self) -> list[str]:
        return self._cors_origins


settings = Settings()
