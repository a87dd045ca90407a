"""Configuration schema for remote listeners."""

from typing import Dict, Any, List, Optional
from enum import Enum
from pydantic import BaseModel, Field, validator


class ListenerType(str, Enum):
    """Supported remote listener backends."""
    DIRECTORY = "directory"
    HTTP = "http"


class ListenerConfig(BaseModel):
    """Configuration for a single remote listener."""

    name: str = Field(..., description="Human-readable name, used in logs and failure reports")
    listener_type: ListenerType = Field(..., description="Backend type")
    options: Dict[str, Any] = Field(default_factory=dict, description="Backend-specific settings")

    load: bool = Field(default=True, description="Consult this listener when pulling")
    save: bool = Field(default=True, description="Notify this listener when pushing")
    is_active: bool = Field(default=True, description="Whether this listener is registered at all")

    @validator('options', always=True)
    def validate_options(cls, v, values):
        """Validate options based on listener type."""
        listener_type = values.get('listener_type')

        if listener_type == ListenerType.DIRECTORY:
            if 'root' not in v:
                raise ValueError("Directory listener requires 'root' in options")

        elif listener_type == ListenerType.HTTP:
            if 'base_url' not in v:
                raise ValueError("HTTP listener requires 'base_url' in options")
            if not str(v['base_url']).startswith(("http://", "https://")):
                raise ValueError("HTTP listener base_url must be an http(s) URL")

        return v

    @validator('save')
    def validate_direction(cls, v, values):
        if not v and not values.get('load', True):
            raise ValueError("Listener must load, save, or both")
        return v


class SyncConfig(BaseModel):
    """Listener wiring for a sync engine.

    Listener order is significant: on pull, the first listener holding a
    snapshot wins.
    """

    version: str = Field(default="1.0", description="Configuration version")
    default_mountpoint: str = Field(default="/data", description="Mountpoint used when none is given")
    listeners: List[ListenerConfig] = Field(default_factory=list, description="Listeners in registration order")

    @validator('listeners')
    def validate_unique_names(cls, v):
        names = [listener.name for listener in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate listener names: {duplicates}")
        return v

    def get_active_listeners(self) -> List[ListenerConfig]:
        return [listener for listener in self.listeners if listener.is_active]

    def get_listener(self, name: str) -> Optional[ListenerConfig]:
        for listener in self.listeners:
            if listener.name == name:
                return listener
        return None


DIRECTORY_LISTENER_EXAMPLE = {
    "name": "local-backup",
    "listener_type": "directory",
    "options": {"root": "./snapshots"}
}

HTTP_LISTENER_EXAMPLE = {
    "name": "object-store",
    "listener_type": "http",
    "options": {
        "base_url": "https://storage.example.com/snapshots",
        "headers": {"Authorization": "Bearer ${SNAPSHOT_TOKEN}"},
        "timeout_seconds": 30
    }
}
