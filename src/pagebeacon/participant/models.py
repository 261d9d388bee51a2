"""Server-issued participant state."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Session(BaseModel):
    """Browsing session created by the collector for one participant."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    uuid: str


class ParticipantConfig(BaseModel):
    """
    Experiment configuration of the logged-in participant.

    Only the fields the client itself looks at are typed; the arm/phase
    semantics belong to the components consuming the config.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    arm: str | None = None
    phase: int | None = None
