"""Static keyword and pattern tables used by the rule-based analyzer.

Bump KEYWORD_TABLES_VERSION whenever a table changes; scores are only
comparable across reports built from the same tables.
"""

import re

KEYWORD_TABLES_VERSION = "2025.1"

INDUSTRY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "technology": (
        "software development", "programming", "coding", "debugging", "testing",
        "agile", "scrum", "git", "api", "database", "cloud computing", "devops",
        "machine learning", "artificial intelligence", "data analysis", "cybersecurity",
    ),
    "business": (
        "project management", "strategic planning", "business analysis", "leadership",
        "team management", "budget management", "stakeholder management",
        "process improvement", "market research", "sales", "customer service",
        "negotiation", "communication",
    ),
    "marketing": (
        "digital marketing", "content marketing", "social media", "seo", "sem",
        "email marketing", "brand management", "campaign management", "analytics",
        "conversion optimization", "lead generation", "market segmentation",
    ),
    "finance": (
        "financial analysis", "budgeting", "forecasting", "risk management",
        "compliance", "audit", "accounting", "financial modeling", "investment",
        "portfolio management", "regulatory", "financial reporting",
    ),
    "healthcare": (
        "patient care", "clinical experience", "medical records", "healthcare compliance",
        "medical terminology", "patient safety", "quality improvement",
        "healthcare technology", "electronic health records", "medical research",
        "clinical trials",
    ),
    "education": (
        "curriculum development", "lesson planning", "classroom management",
        "student assessment", "differentiated instruction", "educational technology",
        "mentoring", "parent communication", "learning outcomes", "tutoring",
    ),
    "engineering": (
        "cad", "design review", "root cause analysis", "quality assurance",
        "project management", "technical documentation", "prototyping",
        "manufacturing", "process improvement", "simulation", "safety compliance",
    ),
    "sales": (
        "business development", "account management", "pipeline management", "crm",
        "lead generation", "negotiation", "quota attainment", "client relationships",
        "forecasting", "cold calling", "closing",
    ),
    "design": (
        "user experience", "user interface", "wireframing", "prototyping",
        "visual design", "typography", "design systems", "user research",
        "figma", "adobe creative suite", "accessibility",
    ),
    "legal": (
        "legal research", "contract drafting", "litigation", "compliance",
        "due diligence", "regulatory", "case management", "legal writing",
        "negotiation", "intellectual property",
    ),
}

# Used when no (known) target industry is supplied.
GENERIC_KEYWORDS: tuple[str, ...] = (
    "communication", "leadership", "teamwork", "problem solving", "project management",
    "collaboration", "time management", "analytical", "stakeholder", "customer",
    "strategy", "process improvement", "reporting", "training", "budget",
)

SOFT_SKILLS: tuple[str, ...] = (
    "leadership", "communication", "teamwork", "problem solving", "analytical",
)

ACTION_VERBS: tuple[str, ...] = (
    "achieved", "managed", "led", "developed", "created", "implemented",
    "improved", "increased", "reduced", "optimized", "designed", "built",
    "launched", "delivered", "coordinated", "supervised", "analyzed",
    "negotiated", "streamlined", "mentored", "automated", "generated",
)

PASSIVE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bwas responsible for\b"),
    re.compile(r"\bduties included\b"),
    re.compile(r"(?<!was )\bresponsible for\b"),
    re.compile(r"\btasked with\b"),
    re.compile(r"\b(?:was|were)\s+\w+ed\s+by\b"),
)

PRONOUN_PATTERN = re.compile(r"\b(?:i|me|my|myself)\b")

QUANTIFIER_PATTERN = re.compile(
    r"(?:[$€£]\s?\d[\d,]*(?:\.\d+)?\s*(?:k|m|million|billion)?"
    r"|\b\d+(?:\.\d+)?\s?(?:%|percent\b|k\b|x\b|million\b|billion\b|thousand\b)"
    r"|\b\d{1,3}(?:,\d{3})+\b)"
)

# Required sections and the patterns that reveal them (in expected order).
SECTION_PATTERNS: dict[str, re.Pattern[str]] = {
    "contact information": re.compile(r"(?:e-?mail|phone|address|linkedin|@)"),
    "professional summary": re.compile(r"\b(?:summary|profile|objective|about me)\b"),
    "work experience": re.compile(r"\b(?:experience|employment|work history|career history)\b"),
    "education": re.compile(r"\b(?:education|degree|university|college|bachelor|master)\b"),
    "skills": re.compile(r"\b(?:skills|competencies|technologies|tools)\b"),
}

# Sections whose absence also weakens the content score.
CORE_CONTENT_SECTIONS: tuple[str, ...] = ("work experience", "education", "skills")

TECH_SKILLS_PATTERN = re.compile(
    r"(?:technical skills|technologies|programming languages|software|tools)"
)

STANDARD_HEADERS: frozenset[str] = frozenset({
    "summary", "professional summary", "profile", "objective", "about me",
    "experience", "work experience", "professional experience", "employment",
    "employment history", "work history", "career history",
    "education", "skills", "technical skills", "core competencies", "competencies",
    "certifications", "projects", "publications", "awards", "volunteer experience",
    "languages", "interests", "references", "contact", "contact information",
})

EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.[a-z]{2,}", re.IGNORECASE)
GARBLED_EMAIL_PATTERN = re.compile(
    r"[\w.+-]+\s*(?:@|\(at\)|\[at\])\s*[\w-]+(?:\s*(?:\.|\(dot\)|\[dot\])\s*[\w-]+)*",
    re.IGNORECASE,
)
PHONE_PATTERN = re.compile(r"(?:\+?\d{1,3}[\s.-]?)?(?:\(\d{2,4}\)|\d{2,4})[\s.-]?\d{3}[\s.-]?\d{3,4}")

# (pattern, issue, severity); severity is one of high / medium / low.
FORMATTING_PATTERNS: tuple[tuple[re.Pattern[str], str, str], ...] = (
    (re.compile(r"\t"), "Contains tab characters", "medium"),
    (re.compile(r"\|"), "Contains pipe characters (possible table layout)", "medium"),
    (re.compile(r"[•●▪■◆➢✓✔►★]"),
     "Contains bullet point symbols", "low"),
    (re.compile(r"[–—]"), "Contains em/en dashes", "low"),
    (re.compile(r"[“”‘’]"), "Contains smart quotes", "low"),
)

BULLET_GLYPHS = re.compile(r"[•●▪■◆➢✓✔►★]")
# Characters outside ASCII that are not already reported by a specific pattern.
OTHER_NON_ASCII = re.compile(
    r"[^\x00-\x7f•●▪■◆➢✓✔►★"
    r"–—“”‘’]"
)
COLUMN_GAP = re.compile(r"(?<=\S) {4,}(?=\S)")
DECORATED_HEADER = re.compile(r"^\s*[=*#~_\-]{2,}\s*[A-Za-z][A-Za-z &/]+\s*[=*#~_\-]{2,}\s*$")

# Date styles recognised for consistency checks.
DATE_STYLES: dict[str, re.Pattern[str]] = {
    "month_name": re.compile(
        r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+(?:19|20)\d{2}\b"
    ),
    "numeric_slash": re.compile(r"\b(?:0?[1-9]|1[0-2])/(?:19|20)\d{2}\b"),
    "iso": re.compile(r"\b(?:19|20)\d{2}-(?:0[1-9]|1[0-2])\b"),
}
YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")
