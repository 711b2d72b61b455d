from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, RootModel, StrictBool, StrictFloat, StrictInt, StrictStr


class MessageKind(str, Enum):
    SUCCESS = "Success"
    PROGRESS = "Progress"
    ERROR = "Error"
    WARNING = "Warning"
    RAW = "Raw"


Scalar = Optional[Union[StrictStr, StrictInt, StrictFloat, StrictBool]]
Record = Dict[str, Scalar]


class ResultPayload(RootModel[List[Record]]):
    """Flat records carried inside a Success envelope's payload."""


class Envelope(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: MessageKind = Field(..., description="Message kind, closed set")
    payload: StrictStr = Field(..., description="Opaque text; JSON records for Success")

    _results: Optional[List[Record]] = PrivateAttr(default=None)

    @property
    def results(self) -> Optional[List[Record]]:
        """Decoded records for Success envelopes, None for every other kind."""
        return self._results
