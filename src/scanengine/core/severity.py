"""CVSS v3.1 severity calculation for agent findings.

Agents attach a CVSS base score to every finding they report. Scores are
computed from vulnerability characteristics with the ``cvss`` library so the
same weakness class always lands on the same score.

Provides:
- calculate_severity: CVSS v3.1 score and severity label from characteristics
- severity_label: Map a CVSS base score to a Severity
- cvss_defaults: Default CVSS characteristics for the classes agents report
- score_for: Shortcut for calculate_severity(cvss_defaults(...))[0]
"""

from typing import Any

from cvss import CVSS3

from scanengine.core.models import Severity

_METRIC_CODES = {
    "attack_vector": "AV",
    "attack_complexity": "AC",
    "privileges_required": "PR",
    "user_interaction": "UI",
    "scope": "S",
    "confidentiality": "C",
    "integrity": "I",
    "availability": "A",
}


def severity_label(score: float) -> Severity:
    """Map a CVSS base score to its qualitative severity.

    Args:
        score: CVSS base score (0.0 - 10.0)

    Returns:
        Severity following the CVSS v3.1 qualitative scale
    """
    if score == 0.0:
        return Severity.INFO
    if score < 4.0:
        return Severity.LOW
    if score < 7.0:
        return Severity.MEDIUM
    if score < 9.0:
        return Severity.HIGH
    return Severity.CRITICAL


def calculate_severity(characteristics: dict[str, Any]) -> tuple[float, Severity]:
    """Calculate CVSS v3.1 score and severity from vulnerability characteristics.

    Args:
        characteristics: Dictionary of CVSS metrics keyed by friendly name
            (attack_vector, attack_complexity, privileges_required,
            user_interaction, scope, confidentiality, integrity, availability)

    Returns:
        Tuple of (score, severity). An incomplete or invalid vector scores
        (0.0, Severity.INFO).

    Example:
        >>> score, label = calculate_severity(cvss_defaults("exposed_database"))
        >>> assert label in (Severity.HIGH, Severity.CRITICAL)
    """
    vector_parts = ["CVSS:3.1"]
    for key, code in _METRIC_CODES.items():
        value = characteristics.get(key)
        if value:
            vector_parts.append(f"{code}:{value}")

    try:
        score = float(CVSS3("/".join(vector_parts)).base_score)
    except Exception:
        return (0.0, Severity.INFO)

    return (score, severity_label(score))


_DEFAULTS: dict[str, dict[str, str]] = {
    "exposed_database": {
        "attack_vector": "N",
        "attack_complexity": "L",
        "privileges_required": "N",
        "user_interaction": "N",
        "scope": "U",
        "confidentiality": "H",
        "integrity": "L",
        "availability": "L",
    },
    "remote_admin_service": {
        "attack_vector": "N",
        "attack_complexity": "H",
        "privileges_required": "N",
        "user_interaction": "N",
        "scope": "U",
        "confidentiality": "L",
        "integrity": "L",
        "availability": "N",
    },
    "cleartext_service": {
        "attack_vector": "N",
        "attack_complexity": "L",
        "privileges_required": "N",
        "user_interaction": "N",
        "scope": "U",
        "confidentiality": "H",
        "integrity": "H",
        "availability": "N",
    },
    "missing_security_header": {
        "attack_vector": "N",
        "attack_complexity": "H",
        "privileges_required": "N",
        "user_interaction": "R",
        "scope": "U",
        "confidentiality": "L",
        "integrity": "L",
        "availability": "N",
    },
    "info_disclosure": {
        "attack_vector": "N",
        "attack_complexity": "L",
        "privileges_required": "N",
        "user_interaction": "N",
        "scope": "U",
        "confidentiality": "L",
        "integrity": "N",
        "availability": "N",
    },
    "sensitive_file_exposure": {
        "attack_vector": "N",
        "attack_complexity": "L",
        "privileges_required": "N",
        "user_interaction": "N",
        "scope": "U",
        "confidentiality": "H",
        "integrity": "N",
        "availability": "N",
    },
    "management_endpoint": {
        "attack_vector": "N",
        "attack_complexity": "L",
        "privileges_required": "N",
        "user_interaction": "N",
        "scope": "U",
        "confidentiality": "H",
        "integrity": "L",
        "availability": "N",
    },
    "public_bucket": {
        "attack_vector": "N",
        "attack_complexity": "L",
        "privileges_required": "N",
        "user_interaction": "N",
        "scope": "C",
        "confidentiality": "H",
        "integrity": "N",
        "availability": "N",
    },
    "insecure_configuration": {
        "attack_vector": "N",
        "attack_complexity": "H",
        "privileges_required": "N",
        "user_interaction": "N",
        "scope": "U",
        "confidentiality": "H",
        "integrity": "L",
        "availability": "N",
    },
    "unauthenticated_iot_protocol": {
        "attack_vector": "N",
        "attack_complexity": "L",
        "privileges_required": "N",
        "user_interaction": "N",
        "scope": "U",
        "confidentiality": "H",
        "integrity": "H",
        "availability": "H",
    },
}

_GENERIC_LOW = {
    "attack_vector": "N",
    "attack_complexity": "H",
    "privileges_required": "L",
    "user_interaction": "R",
    "scope": "U",
    "confidentiality": "L",
    "integrity": "N",
    "availability": "N",
}


def cvss_defaults(vuln_type: str) -> dict[str, str]:
    """Return default CVSS characteristics for a weakness class.

    Unknown classes get a generic low-severity vector.
    """
    return dict(_DEFAULTS.get(vuln_type, _GENERIC_LOW))


def score_for(vuln_type: str) -> float:
    return calculate_severity(cvss_defaults(vuln_type))[0]
