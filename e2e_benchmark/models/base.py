"""Base model configuration for all report data structures."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Base model with standard configuration.

    Every record produced by a pipeline stage is immutable once built.
    """

    model_config = ConfigDict(frozen=True)
