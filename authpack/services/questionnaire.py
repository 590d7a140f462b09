"""
Questionnaire scoring for an authorization project.

Two independent questionnaires feed project readiness:

- the business-plan profile (``build_profile_insights``): weighted scores per
  profile section and per pack section, a completion percentage, perimeter
  opinion and cross-question conflicts;
- the regulatory question bank (``build_question_context``): the visible
  questions for a permission plus required/answered counts, which the
  assessment completion calculator folds into its denominator.

Both are pure functions of their inputs; nothing here touches the database.
"""

import logging

from authpack.catalog.business_plan_profile import (
    ACTIVITY_QUESTION_IDS,
    PROFILE_PERMISSION_CODES,
    PROFILE_QUESTIONS,
    PROFILE_SECTIONS,
    SECTION_DEPENDENCIES,
)
from authpack.catalog.pack_templates import PACK_TEMPLATES
from authpack.catalog.question_bank import QUESTION_SECTIONS
from authpack.utils.helpers import round_half_up

logger = logging.getLogger(__name__)

_QUESTION_INDEX = {question["id"]: question for question in PROFILE_QUESTIONS}


def _pack_section_labels():
    labels = {}
    for template in PACK_TEMPLATES:
        for section in template["sections"]:
            labels.setdefault(section["key"], section["title"])
    return labels


PACK_SECTION_LABELS = _pack_section_labels()


def get_pack_section_label(key: str) -> str:
    return PACK_SECTION_LABELS.get(key, key)


def is_profile_permission(permission) -> bool:
    return permission in PROFILE_PERMISSION_CODES


def _applies(item, permission) -> bool:
    applies_to = item.get("applies_to")
    if not applies_to:
        return True
    return bool(permission) and permission in applies_to


def get_profile_sections(permission=None) -> list[dict]:
    return [section for section in PROFILE_SECTIONS if _applies(section, permission)]


def get_profile_questions(permission=None) -> list[dict]:
    return [question for question in PROFILE_QUESTIONS if _applies(question, permission)]


# ══════════════════════════════════════════════════════════════════════
# Business-plan profile
# ══════════════════════════════════════════════════════════════════════


def _parse_number(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value.replace(",", ""))
        except ValueError:
            return None
    return None


def is_answered(question: dict, value, responses: dict) -> bool:
    """True when ``value`` counts as an answer to ``question``.

    A choice of "other" on an ``allow_other`` question additionally needs
    free text under ``{id}_other_text``.
    """
    if question.get("allow_other"):
        chose_other = value == "other" or (isinstance(value, list) and "other" in value)
        if chose_other:
            other_text = responses.get(f"{question['id']}_other_text")
            if not isinstance(other_text, str) or not other_text.strip():
                return False

    if value is None:
        return False
    qtype = question["type"]
    if qtype == "multi-choice":
        return isinstance(value, list) and len(value) > 0
    if qtype == "number":
        if isinstance(value, str):
            if not value.strip():
                return False
            try:
                float(value)
            except ValueError:
                return False
            return True
        return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value
    if qtype == "boolean":
        return isinstance(value, bool)
    return len(str(value).strip()) > 0


def score_question(question: dict, value, responses: dict) -> tuple[float, int]:
    """Return ``(score, max_score)`` for one answer; max is the question weight."""
    weight = question.get("weight") or 1
    if not is_answered(question, value, responses):
        return 0, weight

    options = question.get("options") or []
    qtype = question["type"]
    if qtype == "single-choice" and options:
        max_option = max([opt["score"] for opt in options] + [1])
        option_score = next((opt["score"] for opt in options if opt["value"] == value), 0)
        return option_score / max_option * weight, weight
    if qtype == "multi-choice" and options:
        return weight, weight
    if qtype == "boolean":
        return (weight if value is True else 0), weight
    return weight, weight


def _activity_highlights(permission, responses: dict) -> list[str]:
    question_id = ACTIVITY_QUESTION_IDS.get(permission)
    question = _QUESTION_INDEX.get(question_id) if question_id else None
    if not question:
        return []
    selected = responses.get(question_id)
    if not isinstance(selected, list):
        return []
    return [opt["label"] for opt in question["options"] if opt["value"] in selected]


def _as_list(value):
    return value if isinstance(value, list) else []


def _payments_opinion(responses: dict) -> dict:
    services = _as_list(responses.get("pay-services"))
    exemptions = [value for value in _as_list(responses.get("pay-exemptions")) if value != "none"]
    issues_emoney = responses.get("pay-emoney") == "yes"

    if not services and not exemptions:
        return {
            "verdict": "unknown",
            "summary": "Payment services scope not confirmed.",
            "rationale": ["Confirm the payment services and perimeter assumptions."],
            "obligations": [],
        }
    if not services:
        return {
            "verdict": "possible-exemption",
            "summary": "Potential exemption from full authorisation.",
            "rationale": [
                "Exemptions selected may apply depending on the exact model.",
                "Confirm scope against PERG 15 exclusions.",
            ],
            "obligations": ["Document exemption rationale and evidence of fit."],
        }

    obligations = [
        "Safeguarding and segregation of customer funds",
        "Operational and security risk management",
        "Incident reporting and notification processes",
        "Financial crime and AML controls",
    ]
    if issues_emoney:
        obligations.append("E-money issuance controls and redemption obligations")
    obligations.append("Strong customer authentication and secure communications (PSD2 RTS)")

    return {
        "verdict": "possible-exemption" if exemptions else "in-scope",
        "summary": (
            "Likely in scope of PSR 2017 and EMRs 2011."
            if issues_emoney
            else "Likely in scope of PSR 2017 payment services."
        ),
        "rationale": [
            "Payment services selected indicate regulated activity.",
            "Some exemptions selected require confirmation." if exemptions else "No exemptions selected.",
        ],
        "obligations": obligations,
    }


def _consumer_credit_opinion(responses: dict) -> dict:
    if not _as_list(responses.get("cc-activities")):
        return {
            "verdict": "unknown",
            "summary": "Consumer credit scope not confirmed.",
            "rationale": ["Confirm the consumer credit activities in scope."],
            "obligations": [],
        }
    return {
        "verdict": "in-scope",
        "summary": "Likely in scope of regulated consumer credit activity.",
        "rationale": ["Selected activities indicate consumer credit permissions are required."],
        "obligations": [
            "Affordability and creditworthiness assessment (CONC 5)",
            "Arrears, forbearance, and vulnerable customer support (CONC 7)",
            "Financial promotions governance (CONC 3)",
        ],
    }


def _investment_opinion(responses: dict) -> dict:
    if not _as_list(responses.get("inv-activities")):
        return {
            "verdict": "unknown",
            "summary": "Investment scope not confirmed.",
            "rationale": ["Confirm investment activities and client categories."],
            "obligations": [],
        }
    return {
        "verdict": "in-scope",
        "summary": "Likely in scope of regulated investment services.",
        "rationale": ["Selected activities indicate investment permissions are required."],
        "obligations": [
            "Client categorisation (COBS 3) and suitability checks (COBS 9/10)",
            "Best execution monitoring (COBS 11.2A)",
            "Conflicts of interest management (COBS 2.3/SYSC 10)",
            "Client assets protections where applicable (CASS)",
        ],
    }


_OPINION_BUILDERS = {
    "payments": _payments_opinion,
    "consumer-credit": _consumer_credit_opinion,
    "investments": _investment_opinion,
}


def detect_conflicts(permission, responses: dict) -> list[dict]:
    """Answer combinations that contradict each other."""
    conflicts = []

    if permission == "payments":
        volume = _parse_number(responses.get("pay-volume")) or 0
        if volume > 1_000_000 and responses.get("pay-safeguarding") == "undecided":
            conflicts.append({
                "id": "volume-safeguarding-conflict",
                "severity": "warning",
                "message": "High transaction volume (>£1m/month) but safeguarding approach undecided.",
                "questionIds": ["pay-volume", "pay-safeguarding"],
                "suggestion": (
                    "Safeguarding is critical for volumes of this size. "
                    "Decide on segregated accounts or insurance."
                ),
            })
        if responses.get("pay-psp-record") == "no" and responses.get("pay-safeguarding") == "segregated":
            conflicts.append({
                "id": "psp-safeguarding-conflict",
                "severity": "warning",
                "message": "Another PSP is PSP of record but the firm plans its own safeguarding account.",
                "questionIds": ["pay-psp-record", "pay-safeguarding"],
                "suggestion": "Confirm which entity holds relevant funds and owns the safeguarding obligation.",
            })

    if responses.get("core-governance") == "not-started" and responses.get("core-winddown") == "draft":
        conflicts.append({
            "id": "governance-winddown-conflict",
            "severity": "warning",
            "message": "Wind-down plan drafted but governance not started. Wind-down requires board oversight.",
            "questionIds": ["core-governance", "core-winddown"],
            "suggestion": "Ensure board/SMF roles are in place to own the wind-down plan.",
        })

    if responses.get("core-capital") == "not-secured" and responses.get("core-projections") == "full":
        conflicts.append({
            "id": "capital-projections-conflict",
            "severity": "warning",
            "message": "Full financial projections but funding not secured.",
            "questionIds": ["core-capital", "core-projections"],
            "suggestion": "Projections should align with realistic funding expectations.",
        })

    return conflicts


def threshold_alerts(permission, responses: dict) -> list[dict]:
    alerts = []
    for question in get_profile_questions(permission):
        threshold = question.get("threshold")
        if not threshold:
            continue
        value = _parse_number(responses.get(question["id"]))
        if value is None:
            continue
        breached = value > threshold["value"] if threshold["comparison"] == "gt" else value < threshold["value"]
        if breached:
            alerts.append({"questionId": question["id"], "message": threshold["message"]})
    return alerts


def locked_sections(permission, responses: dict) -> list[dict]:
    """Profile sections whose prerequisite sections still have required gaps."""
    questions = get_profile_questions(permission)
    incomplete = set()
    for question in questions:
        if question["required"] and not is_answered(question, responses.get(question["id"]), responses):
            incomplete.add(question["section_id"])

    visible = {section["id"] for section in get_profile_sections(permission)}
    locked = []
    for dependency in SECTION_DEPENDENCIES:
        if dependency["section_id"] not in visible:
            continue
        blocking = [sid for sid in dependency["depends_on"] if sid in incomplete]
        if blocking:
            locked.append({
                "sectionId": dependency["section_id"],
                "blockedBy": blocking,
                "reason": dependency["reason"],
            })
    return locked


def build_profile_insights(permission, responses) -> dict:
    """Score a business-plan profile for ``permission``.

    ``completionPercent`` is required-answered / required-total, rounded half
    up; 0 when the permission has no required questions.
    """
    responses = responses or {}
    sections = get_profile_sections(permission)
    questions = get_profile_questions(permission)

    section_stats: dict[str, list] = {}
    pack_stats: dict[str, list] = {}
    signals: dict[str, int] = {}
    required_total = 0
    required_answered = 0

    for question in questions:
        value = responses.get(question["id"])
        answered = is_answered(question, value, responses)
        if question["required"]:
            required_total += 1
            if answered:
                required_answered += 1

        score, max_score = score_question(question, value, responses)
        stats = section_stats.setdefault(question["section_id"], [0, 0])
        stats[0] += score
        stats[1] += max_score
        for key in question["pack_section_keys"]:
            stats = pack_stats.setdefault(key, [0, 0])
            stats[0] += score
            stats[1] += max_score

        if answered:
            for ref in question["regulatory_refs"]:
                signals[ref] = signals.get(ref, 0) + 1

    def _pct(score, max_score):
        return round_half_up(score / max_score * 100) if max_score else 0

    section_scores = []
    for section in sections:
        score, max_score = section_stats.get(section["id"], [0, 0])
        section_scores.append({
            "id": section["id"],
            "label": section["title"],
            "score": score,
            "maxScore": max_score,
            "percent": _pct(score, max_score),
        })

    pack_section_scores = [
        {
            "key": key,
            "label": get_pack_section_label(key),
            "score": score,
            "maxScore": max_score,
            "percent": _pct(score, max_score),
        }
        for key, (score, max_score) in pack_stats.items()
    ]

    # sorted() is stable so ties keep first-seen order
    regulatory_signals = [
        {"label": label, "count": count}
        for label, count in sorted(signals.items(), key=lambda item: -item[1])
    ]

    builder = _OPINION_BUILDERS.get(permission)
    if builder:
        perimeter_opinion = builder(responses)
    else:
        perimeter_opinion = {
            "verdict": "unknown",
            "summary": "Perimeter opinion pending.",
            "rationale": ["Complete the scope section to generate a perimeter view."],
            "obligations": [],
        }

    focus_areas = [
        item["label"] for item in sorted(pack_section_scores, key=lambda item: item["percent"])[:4]
    ]

    return {
        "completionPercent": _pct(required_answered, required_total),
        "sectionScores": section_scores,
        "packSectionScores": pack_section_scores,
        "regulatorySignals": regulatory_signals,
        "activityHighlights": _activity_highlights(permission, responses),
        "perimeterOpinion": perimeter_opinion,
        "focusAreas": focus_areas,
        "conflicts": detect_conflicts(permission, responses),
        "thresholdAlerts": threshold_alerts(permission, responses),
        "lockedSections": locked_sections(permission, responses),
    }


def profile_completion(permission, responses) -> int | None:
    """Completion percent, or None when there are no answered responses."""
    if not responses or not any(_has_value(value) for value in responses.values()):
        return None
    return build_profile_insights(permission, responses)["completionPercent"]


# ══════════════════════════════════════════════════════════════════════
# Regulatory question bank
# ══════════════════════════════════════════════════════════════════════


def _has_value(value) -> bool:
    if value is None:
        return False
    if isinstance(value, (list, dict)):
        return len(value) > 0
    if isinstance(value, str):
        return len(value.strip()) > 0
    return True


def is_question_answered(value) -> bool:
    """Scale answers of 0 count as answered; empty lists and blank strings do not."""
    return _has_value(value)


def _lookup(question_id, basics: dict, question_responses: dict):
    if question_id in question_responses:
        return question_responses[question_id]
    return basics.get(question_id)


def is_question_visible(question: dict, basics: dict, question_responses: dict) -> bool:
    """Evaluate ``conditional_on`` against responses, then firm basics.

    A missing referenced answer hides a ``values`` question and shows a
    ``not_values`` question.
    """
    condition = question.get("conditional_on")
    if not condition:
        return True
    answer = _lookup(condition["question_id"], basics, question_responses)
    answers = answer if isinstance(answer, list) else ([] if answer is None else [answer])

    if condition.get("values") is not None:
        return any(value in condition["values"] for value in answers)
    if condition.get("not_values") is not None:
        return not any(value in condition["not_values"] for value in answers)
    return True


def build_question_context(basics, question_responses, permission_code) -> dict:
    """Visible question-bank sections for a permission with answer counts.

    Only visible required questions count towards ``requiredCount``;
    ``answeredCount`` is the subset of those with an answer.
    """
    basics = basics or {}
    question_responses = question_responses or {}

    sections = []
    required_count = 0
    answered_count = 0
    for section in QUESTION_SECTIONS:
        applicable_to = section.get("applicable_to")
        if applicable_to is not None and permission_code not in applicable_to:
            continue
        visible = [
            question for question in section["questions"]
            if is_question_visible(question, basics, question_responses)
        ]
        section_required = 0
        section_answered = 0
        for question in visible:
            if not question["required"]:
                continue
            section_required += 1
            if is_question_answered(question_responses.get(question["id"])):
                section_answered += 1
        required_count += section_required
        answered_count += section_answered
        sections.append({
            "id": section["id"],
            "title": section["title"],
            "description": section.get("description"),
            "questions": visible,
            "requiredCount": section_required,
            "answeredCount": section_answered,
        })

    return {
        "sections": sections,
        "responses": question_responses,
        "requiredCount": required_count,
        "answeredCount": answered_count,
    }
