"""
Base model for response DTOs

Fields are declared in snake_case and serialized in camelCase, which is
the shape the loyalty front-end reads.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Pydantic base for domain models exposed over the API"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_dict(self) -> dict:
        """JSON-ready dict with camelCase keys (dates as ISO strings)"""
        return self.model_dump(by_alias=True, mode="json")
