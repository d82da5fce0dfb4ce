"""
Content Moderation Service

Rule-based detection of inappropriate language: political name-calling,
profanity, disrespectful terms and threats. Each rule category carries a
severity; when several categories match, the most severe one is reported.

Also defines ``ModerationVerdict``, the allowed/flagged decision returned for
every piece of ingested content.
"""

import re
from typing import Literal

from pydantic import BaseModel, Field


Severity = Literal["minor", "moderate", "severe"]

SEVERITY_LEVELS = {"minor": 1, "moderate": 2, "severe": 3}


class ModerationResult(BaseModel):
    is_violation: bool
    violation_type: str | None = None
    severity: Severity = "minor"
    flagged_words: list[str] = Field(default_factory=list)
    message: str | None = None


class ModerationVerdict(BaseModel):
    """
    Outcome of the moderation pass for one post.

    ``reason`` is None when the post is allowed, otherwise the first filter
    that rejected it (see ``civic_filter.review_post``).
    """
    status: Literal["allowed", "flagged"]
    reason: str | None = None
    civility_score: int = 0
    topics: list[str] = Field(default_factory=list)
    safety_labels: list[str] = Field(default_factory=list)
    moderation: ModerationResult | None = None

    @property
    def allowed(self) -> bool:
        return self.status == "allowed"


def _compile(*patterns: str) -> list[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


MODERATION_RULES = {
    "political_namecalling": {
        "patterns": _compile(
            r"\blibtard(s)?\b",
            r"\bmaggot(s)?\b",
            r"\brepubli(c)?unt(s)?\b",
            r"\bdemoncrat(s)?\b",
            r"\brepubtard(s)?\b",
            r"\bdemotard(s)?\b",
            r"\bcommie(s)?\b",
            r"\bnazi(s)?\b",
            r"\bfascist(s)?\b",
            r"\blibturd(s)?\b",
        ),
        "severity": "moderate",
        "message": "Political name-calling detected",
    },
    "profanity": {
        "patterns": _compile(
            r"\bb[i!1]tch(es)?\b",
            r"\bf[u\*]ck(er|ing|ed)?\b",
            r"\bf\*ck(er|ing|ed)?\b",
            r"\bass\s*hole(s)?\b",
            r"\ba\*\*hole(s)?\b",
            r"\bs\.?o\.?b\.?\b",
            r"\bson\s+of\s+a\s+b[i!1]tch\b",
            r"\bbull\s*sh[i!1]t\b",
            r"\bdam[nm]\s*(it|you)\b",
            r"\bgodd[a@]m[nm]\b",
            r"\bsh[i!1]t(ty|head)?\b",
            r"\bc[u\*]nt(s)?\b",
            r"\bd[i!1]ck(head|s)?\b",
            r"\bpuss(y|ies)\b",
            r"\bbast[a@]rd(s)?\b",
        ),
        "severity": "moderate",
        "message": "Inappropriate language detected",
    },
    "disrespect": {
        "patterns": _compile(
            r"\bidiot(s|ic)?\b",
            r"\bmoron(ic|s)?\b",
            r"\bstupid(ity)?\b",
            r"\bdumb\s*(ass|f[u\*]ck)?\b",
            r"\bloser(s)?\b",
            r"\bscum(bag)?(s)?\b",
            r"\btrash(y)?\b",
            r"\bpathetic\b",
            r"\bworthless\b",
            r"\big?norant\b",
            r"\bretard(ed|s)?\b",
        ),
        "severity": "minor",
        "message": "Disrespectful language detected",
    },
    "threats": {
        "patterns": _compile(
            r"\b(i('ll|ll| will)|we('ll|ll| will))\s+(kill|hurt|harm|destroy|end)\s+(you|them|him|her)\b",
            r"\byou\s+(should|deserve\s+to|need\s+to)\s+die\b",
            r"\bkys\b",
            r"\bkill\s+yourself\b",
            r"\bgo\s+die\b",
        ),
        "severity": "severe",
        "message": "Threatening language detected",
    },
}


def moderate_content(content: str) -> ModerationResult:
    """
    Check ``content`` against every moderation rule.

    Args:
        content: Text to check

    Returns:
        ModerationResult; ``flagged_words`` holds each distinct match,
        lower-cased, in the order found

    Example:
        >>> moderate_content("what an idiot").violation_type
        'disrespect'
    """
    flagged_words: list[str] = []
    violation_type = None
    severity = "minor"
    message = None

    for rule_type, rule in MODERATION_RULES.items():
        for pattern in rule["patterns"]:
            matches = [m.group(0).lower() for m in pattern.finditer(content)]
            if not matches:
                continue

            for word in matches:
                if word not in flagged_words:
                    flagged_words.append(word)

            if violation_type is None or SEVERITY_LEVELS[rule["severity"]] > SEVERITY_LEVELS[severity]:
                violation_type = rule_type
                severity = rule["severity"]
                message = rule["message"]

    return ModerationResult(
        is_violation=bool(flagged_words),
        violation_type=violation_type,
        severity=severity,
        flagged_words=flagged_words,
        message=message,
    )


def format_flagged_words(words: list[str]) -> str:
    """
    Censor flagged words for display while keeping them recognisable.

    >>> format_flagged_words(["idiot", "kys"])
    'i***t, ***'
    """
    censored = []
    for word in words:
        if len(word) <= 3:
            censored.append("***")
        else:
            censored.append(word[0] + "*" * (len(word) - 2) + word[-1])
    return ", ".join(censored)
