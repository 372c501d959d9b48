# Relay_app/core/messages.py
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict

# ---------------- 클라이언트 → 서버 ----------------
class ControlMessage(BaseModel):
    """Text frame from a streamer or viewer. Unknown keys are tolerated."""
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    deviceId: Optional[str] = None       # register (multi)
    targetDevice: Optional[str] = None   # view (multi)


# ---------------- 서버 → 클라이언트 ----------------
class _Outbound(BaseModel):
    def to_wire(self) -> dict:
        return self.model_dump(exclude_none=True)


class Connected(_Outbound):
    type: Literal["connected"] = "connected"
    status: str = "ok"
    clientType: str


class Registered(_Outbound):
    type: Literal["registered"] = "registered"
    status: str = "success"
    deviceId: Optional[str] = None


class StreamAvailable(_Outbound):
    type: Literal["stream_available"] = "stream_available"
    status: str = "ok"
    targetDevice: Optional[str] = None


class NoStream(_Outbound):
    type: Literal["no_stream"] = "no_stream"
    status: str = "error"
    message: str = "Stream not available"


class StreamEnded(_Outbound):
    type: Literal["stream_ended"] = "stream_ended"
    message: str = "Stream has ended"
