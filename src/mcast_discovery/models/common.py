from pydantic import BaseModel, Field


class BasePydanticModel(BaseModel):
    model_config = {
        "extra": "forbid",
    }

class Endpoint(BasePydanticModel):
    """Network address a discovered service claims to be reachable at."""
    host: str # Source address observed on the socket, not resolved
    port: int = Field(..., ge=0, le=65535)

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }

    def __str__(self) -> str:
        if ":" in self.host: # IPv6 literal
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"
