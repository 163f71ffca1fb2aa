"""Field completeness rules."""

from __future__ import annotations

from typing import Any

from ...schemas import FactCheckAnswer, MultimodalAnswer, RedTeamAnswer, Screening, Submission, ValidationFlag
from ..answers import is_blank


class RequiredFieldsRule:
    """Flag skipped optional questions and empty secondary fields."""

    name = "required_fields"

    def check(self, screening: Screening, submission: Submission, context: dict[str, Any]) -> ValidationFlag:
        missing: list[str] = []
        for index, (question, answer) in enumerate(zip(screening.questions, submission.answers)):
            label = f"Q{index + 1}"
            if is_blank(answer):
                missing.append(f"{label} unanswered")
                continue
            if isinstance(answer, RedTeamAnswer):
                if not answer.prompt.strip():
                    missing.append(f"{label} prompt")
                if not answer.expected_vulnerability.strip():
                    missing.append(f"{label} expected vulnerability")
            elif isinstance(answer, MultimodalAnswer):
                if not answer.description.strip():
                    missing.append(f"{label} description")
            elif isinstance(answer, FactCheckAnswer):
                if not answer.explanation.strip():
                    missing.append(f"{label} explanation")

        if missing:
            return ValidationFlag(rule=self.name, passed=False, detail="Missing: " + ", ".join(missing))
        return ValidationFlag(rule=self.name, passed=True, detail="All fields completed")


class SourceUrlRule:
    """Fact-check answers should cite a source."""

    name = "source_url"

    def check(self, screening: Screening, submission: Submission, context: dict[str, Any]) -> ValidationFlag:
        checked = 0
        missing: list[str] = []
        for index, answer in enumerate(submission.answers):
            if not isinstance(answer, FactCheckAnswer) or is_blank(answer):
                continue
            checked += 1
            if not answer.source_url.strip():
                missing.append(f"Q{index + 1}")

        if missing:
            return ValidationFlag(rule=self.name, passed=False, detail="No source URL: " + ", ".join(missing))
        if not checked:
            return ValidationFlag(rule=self.name, passed=True, detail="No fact-check answers")
        return ValidationFlag(rule=self.name, passed=True, detail="Sources cited")
