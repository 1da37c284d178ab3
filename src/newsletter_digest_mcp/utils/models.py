from typing import ClassVar

from pydantic import BaseModel
from pydantic.config import ConfigDict


class BaseDigestModel(BaseModel):
    """A pydantic base model for the records produced by the digest pipeline."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        use_attribute_docstrings=True,
        extra="forbid",
    )


class BaseDigestArbitraryModel(BaseModel):
    """A pydantic base model for pipeline components that hold clients and other live objects."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=False,
        use_attribute_docstrings=True,
        arbitrary_types_allowed=True,
    )
