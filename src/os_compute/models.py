from __future__ import annotations

from typing import Any, Dict, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from os_compute.errors import ValidationError

M = TypeVar("M", bound=BaseModel)

_MISSING_TYPES = {"string_type", "string_too_short"}


class Credentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    auth_url: str = Field(min_length=1)
    user: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)
    project_id: str = Field(min_length=1)
    region: Optional[str] = None


class AuthState(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str = Field(min_length=1, repr=False)
    base_url: str = Field(min_length=1)

    @field_validator("base_url")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")


class ListQuery(BaseModel):
    detail: bool = True

    @field_validator("detail", mode="before")
    @classmethod
    def _undefined_is_false(cls, v: Any) -> Any:
        return False if v is None else v

    @property
    def suffix(self) -> str:
        return "/detail" if self.detail else ""


class ServerCreate(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str = Field(min_length=1)
    flavor: str = Field(min_length=1)
    image: str = Field(min_length=1)

    def to_body(self) -> Dict[str, Any]:
        return {
            "server": {
                "name": self.name,
                "imageRef": self.image,
                "flavorRef": self.flavor,
            }
        }


class ImageCreate(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str = Field(min_length=1)
    server: str = Field(min_length=1)
    meta: Dict[StrictStr, str] = Field(default_factory=dict)

    @field_validator("meta", mode="before")
    @classmethod
    def _default_meta(cls, v: Any) -> Any:
        return {} if v is None else v

    def to_body(self) -> Dict[str, Any]:
        return {
            "createImage": {
                "name": self.name,
                "metadata": dict(self.meta),
            }
        }


def _describe(err: dict) -> str:
    field = ".".join(str(p) for p in err["loc"]) or "value"
    top = str(err["loc"][0]) if err["loc"] else field
    if len(err["loc"]) == 1 and (
        err["type"] == "missing" or (err["type"] in _MISSING_TYPES and err.get("input") in (None, ""))
    ):
        return f"{top} param is required"
    if top == "meta":
        return "meta param must be a mapping of strings to strings"
    return f"{field}: {err['msg']}"


def build(model: Type[M], **data: Any) -> M:
    """
    Validate keyword arguments into `model`.

    Raises os_compute.errors.ValidationError, never pydantic.ValidationError.
    """
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        messages = [_describe(e) for e in exc.errors()]
        raise ValidationError("; ".join(dict.fromkeys(messages))) from exc
