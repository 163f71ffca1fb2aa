"""Free-text length rule for explanation fields."""

from __future__ import annotations

from typing import Any

from ...schemas import FactCheckAnswer, MultimodalAnswer, RedTeamAnswer, Screening, Submission, ValidationFlag
from ..answers import word_count


class JustificationLengthRule:
    """Flag explanations shorter than the screening's word minimum.

    Ranking justifications are enforced during answer validation; this rule
    covers the softer fields: fact-check and red-team explanations and
    multimodal descriptions.
    """

    name = "justification_length"

    def check(self, screening: Screening, submission: Submission, context: dict[str, Any]) -> ValidationFlag:
        short: list[str] = []
        checked = 0
        for index, (question, answer) in enumerate(zip(screening.questions, submission.answers)):
            if isinstance(answer, (FactCheckAnswer, RedTeamAnswer)):
                text = answer.explanation
            elif isinstance(answer, MultimodalAnswer):
                text = answer.description
            else:
                continue
            if question.optional and not text.strip():
                continue
            checked += 1
            minimum = getattr(question, "min_words", None)
            if minimum is None:
                minimum = screening.min_justification_words
            words = word_count(text)
            if words < minimum:
                short.append(f"Q{index + 1} ({words}/{minimum} words)")

        if short:
            return ValidationFlag(rule=self.name, passed=False, detail="Too short: " + ", ".join(short))
        if not checked:
            return ValidationFlag(rule=self.name, passed=True, detail="No free-text explanations")
        return ValidationFlag(rule=self.name, passed=True, detail=f"{checked} explanation(s) meet the minimum")

