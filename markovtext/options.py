from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional

from .generator import DEFAULT_MAX_TOKENS
from .model import DEFAULT_ORDER

DEFAULT_BATCH_SIZE = 20
MAX_BATCH_SIZE = 50
DEFAULT_MIN_LENGTH = 20
DEFAULT_SESSION_CAP = 20


class GenerationOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    order: int = Field(
        description="Number of words in each n-gram key", default=DEFAULT_ORDER
    )
    min_length: int = Field(
        description="Generated lines shorter than this many characters are dropped",
        default=DEFAULT_MIN_LENGTH,
    )
    session_cap: int = Field(
        description="Maximum number of lines delivered per session",
        default=DEFAULT_SESSION_CAP,
    )
    batch_size: int = Field(
        description="Corpus lines fetched and candidates generated per batch",
        default=DEFAULT_BATCH_SIZE,
    )
    max_tokens: int = Field(
        description="Safety cap on the number of words in one generated line",
        default=DEFAULT_MAX_TOKENS,
    )
    max_sentences: Optional[int] = Field(
        description="Stop a line after this many sentences", default=None
    )
    min_words: int = Field(
        description="Generated lines with fewer words than this are dropped, 0 to disable",
        default=0,
    )
    reject_artifacts: bool = Field(
        description="Drop generated lines that are only digits or contain _ [ or ]",
        default=False,
    )

    @field_validator("order")
    def validate_order(cls, order):
        if order < 1:
            raise ValueError("order must be >= 1")
        return order

    @field_validator("min_length", "min_words")
    def validate_not_negative(cls, value, info):
        if value < 0:
            raise ValueError("{} must be >= 0".format(info.field_name))
        return value

    @field_validator("session_cap", "max_tokens")
    def validate_positive(cls, value, info):
        if value < 1:
            raise ValueError("{} must be >= 1".format(info.field_name))
        return value

    @field_validator("batch_size")
    def validate_batch_size(cls, batch_size):
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(
                "batch_size must be between 1 and {}".format(MAX_BATCH_SIZE)
            )
        return batch_size

    @field_validator("max_sentences")
    def validate_max_sentences(cls, max_sentences):
        if max_sentences is None:
            return None
        if max_sentences < 1:
            raise ValueError("max_sentences must be >= 1")
        return max_sentences
