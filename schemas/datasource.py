from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class ConnectionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class DataSourceConnection(BaseModel):
    """
    Descriptor of a registered data source.

    Read-only for this service; the registry owns it. `status` is only
    consulted when choosing which connections to offer.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Logical data source identifier")
    name: str = Field(..., description="Display name, e.g. db@host")
    type: str = Field(..., description="Backend type, e.g. postgresql")
    status: ConnectionStatus = Field(default=ConnectionStatus.ACTIVE)

    @property
    def is_active(self) -> bool:
        return self.status == ConnectionStatus.ACTIVE


# Synthesized when the registry is empty or unreachable
DEFAULT_CONNECTION = DataSourceConnection(
    id="mock-data-connection",
    name="mock_data_db@localhost",
    type="postgresql",
    status=ConnectionStatus.ACTIVE,
)
