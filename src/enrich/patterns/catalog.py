"""Default detection pattern catalog.

Two families:

- direct mentions: one pattern per well-known framework, library or
  datastore, naming it canonically (``"postgres"`` and ``"PostgreSQL"`` both
  detect ``postgresql``)
- capture patterns: phrasings such as "using X framework" that name an
  arbitrary token
"""

import re

from .models import DetectionPattern

DIRECT_WEIGHT = 0.8
CAPTURE_WEIGHT = 0.6

# (library, category, regex)
DIRECT_MENTIONS: list[tuple[str, str, str]] = [
    ("react", "framework", r"\breact(?:\.?js)?\b"),
    ("vue", "framework", r"\bvue(?:\.?js)?\b"),
    ("angular", "framework", r"\bangular(?:js)?\b"),
    ("svelte", "framework", r"\bsvelte(?:kit)?\b"),
    ("nextjs", "framework", r"\bnext\.?js\b"),
    ("nuxt", "framework", r"\bnuxt(?:\.?js)?\b"),
    ("express", "framework", r"\bexpress\.?js\b|\bexpress\s+(?:server|app|router|middleware)\b"),
    ("nodejs", "runtime", r"\bnode\.?js\b"),
    ("typescript", "language", r"\btypescript\b"),
    ("tailwindcss", "styling", r"\btailwind(?:\s*css)?\b"),
    ("django", "framework", r"\bdjango\b"),
    ("flask", "framework", r"\bflask\b"),
    ("fastapi", "framework", r"\bfast\s?api\b"),
    ("spring-boot", "framework", r"\bspring\s+boot\b"),
    ("rails", "framework", r"\b(?:ruby\s+on\s+)?rails\b"),
    ("laravel", "framework", r"\blaravel\b"),
    ("postgresql", "datastore", r"\bpostgres(?:ql)?\b"),
    ("mysql", "datastore", r"\bmysql\b"),
    ("mongodb", "datastore", r"\bmongo(?:db)?\b"),
    ("redis", "datastore", r"\bredis\b"),
    ("sqlite", "datastore", r"\bsqlite3?\b"),
    ("prisma", "library", r"\bprisma\b"),
    ("sqlalchemy", "library", r"\bsqlalchemy\b"),
    ("graphql", "library", r"\bgraphql\b"),
    ("pydantic", "library", r"\bpydantic\b"),
    ("pandas", "library", r"\bpandas\b"),
    ("jest", "testing", r"\bjest\b"),
    ("vitest", "testing", r"\bvitest\b"),
    ("pytest", "testing", r"\bpytest\b"),
    ("playwright", "testing", r"\bplaywright\b"),
]

# (id, category, regex with one capture group, base strength)
CAPTURE_PATTERNS: list[tuple[str, str, str, float]] = [
    ("create-component", "component", r"create\s+an?\s+([\w.-]+)\s+component", 0.9),
    ("using-framework", "framework", r"using\s+([\w.-]+)\s+framework", 0.9),
    ("with-library", "library", r"with\s+([\w.-]+)\s+library", 0.8),
    ("build-app", "app", r"build\s+an?\s+([\w.-]+)\s+app", 0.8),
    ("component-suffix", "component", r"([\w.-]+)\s+components?\b", 0.7),
    ("framework-suffix", "framework", r"([\w.-]+)\s+framework\b", 0.7),
    ("library-suffix", "library", r"([\w.-]+)\s+library\b", 0.7),
    ("ui-library", "ui", r"([\w.-]+)\s+ui\b", 0.6),
    ("styling-library", "styling", r"([\w.-]+)\s+styling\b", 0.6),
]


def default_patterns() -> list[DetectionPattern]:
    """Build a fresh copy of the default catalog."""
    patterns = [
        DetectionPattern(
            id=f"mention-{library}",
            matcher=re.compile(regex, re.IGNORECASE),
            category=category,
            weight=DIRECT_WEIGHT,
            base_strength=1.0,
            library=library,
        )
        for library, category, regex in DIRECT_MENTIONS
    ]
    patterns.extend(
        DetectionPattern(
            id=pattern_id,
            matcher=re.compile(regex, re.IGNORECASE),
            category=category,
            weight=CAPTURE_WEIGHT,
            base_strength=strength,
        )
        for pattern_id, category, regex, strength in CAPTURE_PATTERNS
    )
    return patterns
