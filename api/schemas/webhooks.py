from pydantic import BaseModel, Field


class SyncResult(BaseModel):
    events: int = Field(description="Number of received events")
    sessions: dict[str, int] = Field(description="Recalculated booking counters per exam session")
