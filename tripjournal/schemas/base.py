import uuid

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class JournalModel(BaseModel):
    """Base for stored records. JSON blobs use camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def new_id() -> str:
    return uuid.uuid4().hex
