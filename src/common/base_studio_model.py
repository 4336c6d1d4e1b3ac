from pydantic import BaseModel, ConfigDict


class BaseStudioModel(BaseModel):
    """Base Pydantic model for the studio edit engine.

    Provides defaults specific to our codebase and makes global changes easier.
    """

    model_config = ConfigDict(
        frozen=True,
        revalidate_instances="always",
        validate_assignment=True,
        populate_by_name=True,
    )


class BaseWireModel(BaseStudioModel):
    """Base model for the Edit wire format.

    Unknown keys are rejected so malformed documents are reported instead of
    silently dropped.
    """

    model_config = ConfigDict(extra="forbid")
