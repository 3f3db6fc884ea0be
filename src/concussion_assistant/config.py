import os

from pydantic import BaseModel

TRUTHY = {"1", "true", "yes"}


class Settings(BaseModel):
    llm_model: str = "gpt-4o"
    llm_timeout: float = 20.0
    offline: bool = False
    store_path: str = ".concussion_assistant.json"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            llm_model=os.getenv("CONCUSSION_ASSISTANT_LLM", "gpt-4o"),
            llm_timeout=float(os.getenv("CONCUSSION_ASSISTANT_LLM_TIMEOUT", "20")),
            offline=os.getenv("CONCUSSION_ASSISTANT_OFFLINE", "0").lower() in TRUTHY,
            store_path=os.getenv("CONCUSSION_ASSISTANT_STORE", ".concussion_assistant.json"),
        )
