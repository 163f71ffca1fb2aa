"""Typed answer variants, one per question family."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _AnswerBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ChoiceAnswer(_AnswerBase):
    kind: Literal["choice"] = "choice"
    selected: str = ""


class MultiChoiceAnswer(_AnswerBase):
    kind: Literal["multi"] = "multi"
    selected: tuple[str, ...] = ()


class RankingAnswer(_AnswerBase):
    kind: Literal["ranking"] = "ranking"
    choice: str = ""
    justification: str = ""


class FactCheckAnswer(_AnswerBase):
    kind: Literal["fact_check"] = "fact_check"
    verdict: str = ""
    source_url: str = ""
    explanation: str = ""


class RedTeamAnswer(_AnswerBase):
    kind: Literal["red_team"] = "red_team"
    prompt: str = ""
    expected_vulnerability: str = ""
    explanation: str = ""


class MultimodalAnswer(_AnswerBase):
    kind: Literal["multimodal"] = "multimodal"
    description: str = ""
    issues: tuple[str, ...] = ()
    rating: int | float | None = None


class CodingAnswer(_AnswerBase):
    kind: Literal["coding"] = "coding"
    code: str = ""


class TextAnswer(_AnswerBase):
    kind: Literal["text"] = "text"
    text: str = ""


Answer = Annotated[
    Union[
        ChoiceAnswer,
        MultiChoiceAnswer,
        RankingAnswer,
        FactCheckAnswer,
        RedTeamAnswer,
        MultimodalAnswer,
        CodingAnswer,
        TextAnswer,
    ],
    Field(discriminator="kind"),
]
