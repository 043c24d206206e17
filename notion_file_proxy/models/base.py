"""JsonModel base class for API communication."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class JsonModel(BaseModel):
    """Base model with camelCase JSON and snake_case attributes.

    Notion and the page renderer speak camelCase (``pageId``, ``recordMap``);
    Python code uses snake_case. Record-map contents are opaque and keep
    their own keys.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def model_dump_json(self, **kwargs) -> str:
        """Always emit camelCase unless told otherwise."""
        kwargs.setdefault("by_alias", True)
        return super().model_dump_json(**kwargs)
