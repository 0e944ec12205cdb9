"""Speech normalization for narration text.

Responsibilities:
- Strip inline Markdown markers and turn line breaks into pauses.
- Expand abbreviations and map technical acronyms to spoken forms.
- Insert pauses around arrows, colons, and parentheses.

`normalize_for_speech` is pure; its output is part of every audio cache key.
"""

from __future__ import annotations

import re

from .markdown import strip_inline_markdown

_ABBREVIATIONS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), replacement)
    for pattern, replacement in (
        (r"\be\.g\.(,?)", r"for example\1"),
        (r"\bi\.e\.(,?)", r"that is\1"),
        (r"\betc\.(,?)", r"et cetera\1"),
        (r"\bet al\.(,?)", r"and others\1"),
        (r"\bviz\.(,?)", r"namely\1"),
        (r"\bcf\.(,?)", r"compare\1"),
        (r"\bvs\.", "versus"),
        (r"\bapprox\.", "approximately"),
        (r"\bavg\.", "average"),
        (r"\bfig\.", "figure"),
        (r"\bn\.b\.(,?)", r"note\1"),
        (r"\bp\.s\.(,?)", r"post script\1"),
    )
)

# Longer and plural forms precede their prefixes.
_ACRONYM_TABLE: tuple[tuple[str, str, bool], ...] = (
    (r"CI/CD", "C I / C D", False),
    (r"HTTPS", "H T T P S", False),
    (r"HTTP/2", "H T T P 2", False),
    (r"HTTP", "H T T P", False),
    (r"NoSQL", "no S Q L", True),
    (r"mTLS", "mutual T L S", False),
    (r"gRPC", "G R P C", False),
    (r"NGINX", "engine X", True),
    (r"K8s", "Kubernetes", True),
    (r"DevSecOps", "Dev Sec Ops", False),
    (r"DevOps", "Dev Ops", False),
    (r"GitOps", "Git Ops", False),
    (r"FinOps", "Fin Ops", False),
    (r"JSON", "Jason", False),
    (r"RBAC", "R back", False),
    (r"CIDR", "cider", False),
    (r"Istiod", "Istio D", False),
    (r"etcd", "et-C-D", False),
    (r"kubectl", "kube control", False),
    (r"kubeconfig", "kube config", False),
    (r"AMQP", "A M Q P", False),
    (r"CQRS", "C Q R S", False),
    (r"SBOMs", "S bombs", False),
    (r"SBOM", "S bomb", False),
    (r"SLSA", "salsa", False),
    (r"eBPF", "E B P F", False),
    (r"WebAssembly", "Web Assembly", False),
    (r"PromQL", "Prom Q L", False),
    (r"LogQL", "Log Q L", False),
    (r"EC2", "E C 2", False),
    (r"S3", "S 3", False),
    (r"APIs", "Ay P Eyes", False),
    (r"VMs", "V Ms", False),
    (r"URLs", "U R Ls", False),
    (r"CRDs", "C R Ds", False),
    (r"SLOs", "S L Os", False),
    (r"SLIs", "S L Is", False),
    (r"SLAs", "S L As", False),
    (r"API", "Ay P I", False),
    (r"APM", "A P M", False),
    (r"AWS", "A W S", False),
    (r"ALB", "A L B", False),
    (r"CI", "C I", False),
    (r"CLI", "C L I", False),
    (r"CNI", "C N I", False),
    (r"FIS", "F I S", False),
    (r"IAM", "I A M", False),
    (r"IDE", "I D E", False),
    (r"IDP", "I D P", False),
    (r"IP", "I P", False),
    (r"KPI", "K P I", False),
    (r"OAM", "O A M", False),
    (r"OCI", "O C I", False),
    (r"OIDC", "O I D C", False),
    (r"OPA", "O P A", False),
    (r"PKI", "P K I", False),
    (r"SAML", "S A M L", False),
    (r"SLA", "S L A", False),
    (r"SLI", "S L I", False),
    (r"WAF", "W A F", False),
    (r"DORA", "dora", False),
    (r"IaC", "I ay C", False),
    (r"LDAP", "L dap", False),
    (r"OWASP", "O wasp", False),
    (r"SHA", "shah", False),
    (r"SOPS", "sops", False),
    (r"Wasm", "wasm", False),
    (r"xDS", "X D S", False),
)

_ACRONYMS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (
        re.compile(rf"\b{re.escape(token)}\b", re.IGNORECASE if ignore_case else 0),
        spoken,
    )
    for token, spoken, ignore_case in _ACRONYM_TABLE
)

# Uppercase words read as words rather than spelled letter by letter.
_WORD_LIKE_ACRONYMS = {
    "dora": "dora",
    "wasm": "wasm",
    "salsa": "salsa",
    "sops": "sops",
    "yaml": "YAML",
    "post": "POST",
    "get": "GET",
    "put": "PUT",
    "delete": "DELETE",
    "patch": "PATCH",
    "head": "HEAD",
    "options": "OPTIONS",
    "trace": "TRACE",
    "connect": "CONNECT",
}

_UPPERCASE_ACRONYM_PATTERN = re.compile(r"\b((?=[A-Z0-9]*[A-Z])[A-Z0-9]{2,})(s?)\b")
_SPOKEN_LETTERS = {"A": "Ay", "I": "Eye"}


def _spell_acronym(match: re.Match[str]) -> str:
    """Spell an unmapped uppercase acronym letter by letter."""

    acronym, plural = match.group(1), match.group(2)
    word_like = _WORD_LIKE_ACRONYMS.get(acronym.lower())
    if word_like is not None:
        return word_like
    spoken = " ".join(_SPOKEN_LETTERS.get(char, char) for char in acronym)
    return f"{spoken}{plural}"


def normalize_for_speech(text: str) -> str:
    """Return a TTS-friendly rendition of `text`."""

    result = strip_inline_markdown(text)
    result = re.sub(r"\r?\n+", ",, ", result)

    for pattern, replacement in _ABBREVIATIONS:
        result = pattern.sub(replacement, result)
    for pattern, replacement in _ACRONYMS:
        result = pattern.sub(replacement, result)
    result = _UPPERCASE_ACRONYM_PATTERN.sub(_spell_acronym, result)

    result = re.sub(r"\s*→\s*", "... ", result)
    result = re.sub(r":(?=[^\s,.])", ":, ", result)
    result = re.sub(r"(\S)\s*\(", r"\1, (", result)
    return re.sub(r"\)\s*", ")... ", result)
