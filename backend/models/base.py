"""Shared base model and literal types for the wire contracts."""

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Route = Literal["uk_student", "usa_f1", "france_ema", "france_icn"]
Decision = Literal["accepted", "rejected", "borderline"]
InsightType = Literal["strength", "weakness"]


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
