"""Rule-based ATS compatibility scoring.

Each section starts at 100 and loses points per finding; scores are clamped
to 0-100. The overall score is the weighted sum of the four section scores
(see SectionWeights). Pure and synchronous: no I/O, no shared state, the
same input always produces the same report.
"""

import logging
import re
from dataclasses import dataclass, field

from src.analysis import keywords as kw
from src.core.config import AnalyzerConfig, SectionWeights
from src.core.schemas import AnalysisSummary, ScoreModel, ScoreSections, SectionScore

logger = logging.getLogger(__name__)

# Lower rank sorts first.
_SEVERITY_RANK = {"critical": 0, "high": 1, "medium": 2, "low": 3, "info": 4}
_FORMAT_PENALTY = {"high": 20, "medium": 10, "low": 5}

_TOKEN_PATTERN = re.compile(r"[a-z0-9+#]+")
_CAPS_HEADER = re.compile(r"^[A-Z][A-Z &/]{2,40}:?$")


def normalize_token(token: str) -> str:
    """Lowercase a token and strip a common inflectional suffix.

    Deliberately crude: both résumé text and keyword tables go through the
    same function, so only consistency matters.
    """
    t = token.lower()
    if len(t) > 4 and t.endswith("ies"):
        t = t[:-3] + "y"
    else:
        for suffix in ("ing", "ed", "s"):
            if t.endswith(suffix) and len(t) - len(suffix) >= 3 and not t.endswith("ss"):
                t = t[: -len(suffix)]
                break
    if len(t) > 3 and t.endswith("e"):
        t = t[:-1]
    return t


def normalize_text(text: str) -> str:
    """Tokenise and normalise text into a single space-joined string."""
    return " ".join(normalize_token(tok) for tok in _TOKEN_PATTERN.findall(text.lower()))


def count_phrase(normalized_text: str, phrase: str) -> int:
    """Count whole-token occurrences of a keyword phrase in normalised text."""
    needle = normalize_text(phrase)
    if not needle:
        return 0
    return len(re.findall(rf"(?<!\S){re.escape(needle)}(?!\S)", normalized_text))


def weighted_overall(sections: ScoreSections, weights: SectionWeights) -> int:
    """Combine section scores into the overall score."""
    total = (
        sections.formatting.score * weights.formatting
        + sections.content.score * weights.content
        + sections.keywords.score * weights.keywords
        + sections.structure.score * weights.structure
    )
    return max(0, min(100, round(total)))


def build_summary(sections: ScoreSections, suggested_keywords: list[str]) -> AnalysisSummary:
    """Derive strengths, critical issues and quick wins from section scores."""
    strengths: list[str] = []
    critical: list[str] = []
    quick_wins: list[str] = []

    if sections.formatting.score >= 80:
        strengths.append("Good ATS-friendly formatting")
    if sections.structure.score >= 80:
        strengths.append("Well-structured resume with required sections")
    if sections.content.score >= 80:
        strengths.append("Strong use of action verbs and professional language")
    if sections.keywords.score >= 80:
        strengths.append("Good keyword optimization for your industry")

    if sections.formatting.score < 60:
        critical.append("Formatting issues may prevent ATS parsing")
    if sections.structure.score < 60:
        critical.append("Missing essential resume sections")
    if sections.content.score < 60:
        critical.append("Content needs improvement for better impact")
    if sections.keywords.score < 60:
        critical.append("Insufficient industry-relevant keywords")

    if suggested_keywords:
        quick_wins.append("Add suggested industry keywords to improve relevance")
    if any(i.startswith("Limited quantifiable achievements") for i in sections.content.issues):
        quick_wins.append("Add specific numbers and metrics to achievements")
    if any("bullet" in i for i in sections.formatting.issues):
        quick_wins.append("Replace special bullet symbols with simple dashes")

    return AnalysisSummary(strengths=strengths, critical_issues=critical, quick_wins=quick_wins)


@dataclass
class _Findings:
    """Accumulates the score, issues and improvements of one section."""

    score: float = 100.0
    issues: list[tuple[int, int, str]] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)

    def penalize(
        self,
        points: float,
        issue: str,
        severity: str,
        improvement: str | None = None,
    ) -> None:
        self.score -= points
        self.issues.append((_SEVERITY_RANK[severity], len(self.issues), issue))
        if improvement:
            self.improve(improvement)

    def improve(self, text: str) -> None:
        if text not in self.improvements:
            self.improvements.append(text)

    def to_section(self, scale: float = 1.0) -> SectionScore:
        score = max(0.0, min(100.0, self.score)) * scale
        ordered = [text for _, _, text in sorted(self.issues)]
        return SectionScore(
            score=max(0, min(100, round(score))),
            issues=ordered,
            improvements=list(self.improvements),
        )


class RuleBasedAnalyzer:
    """Deterministic scorer: résumé text (+ optional industry) to ScoreModel.

    Usage::

        analyzer = RuleBasedAnalyzer(settings.analyzer)
        report = analyzer.analyze(text, "technology")
    """

    def __init__(self, config: AnalyzerConfig | None = None) -> None:
        self._config = config or AnalyzerConfig()

    @property
    def config(self) -> AnalyzerConfig:
        return self._config

    def analyze(self, resume_text: str, target_industry: str | None = None) -> ScoreModel:
        """Score résumé text across formatting, content, keywords and structure.

        Never raises for string input: empty or very short text yields a
        report with very low scores and an insufficient-content issue.
        """
        config = self._config
        text = resume_text or ""
        truncated = len(text) > config.max_chars
        if truncated:
            text = text[: config.max_chars]

        lower = text.lower()
        normalized = normalize_text(text)
        positions = _section_positions(lower)

        formatting = _analyze_formatting(text)
        if truncated:
            formatting.penalize(
                0,
                f"Resume text exceeds {config.max_chars} characters; only the first "
                f"{config.max_chars} were analyzed",
                "info",
            )
        content = _analyze_content(lower, positions)
        keywords, suggested = _analyze_keywords(
            lower, normalized, target_industry, config.keyword_saturation, config.stuffing_threshold,
        )
        structure = _analyze_structure(lower, positions)

        word_count = len(text.split())
        scale = 1.0
        if word_count < config.min_words:
            scale = word_count / config.min_words
            notice = (
                f"Insufficient content: only {word_count} words found "
                f"(at least {config.min_words} expected)"
            )
            for findings in (formatting, content, keywords, structure):
                findings.issues.append((-1, -1, notice))
                findings.improve("Add complete sections describing your experience, education and skills")
            logger.debug("Short resume (%d words) - scaling section scores by %.2f", word_count, scale)

        sections = ScoreSections(
            formatting=formatting.to_section(scale),
            content=content.to_section(scale),
            keywords=keywords.to_section(scale),
            structure=structure.to_section(scale),
        )
        return ScoreModel(
            overall_score=weighted_overall(sections, config.weights),
            sections=sections,
            suggested_keywords=suggested,
            summary=build_summary(sections, suggested),
            ai_enhanced=False,
            weights_version=config.weights.version,
        )


def _section_positions(lower: str) -> dict[str, int]:
    """Index of the first hint of each required section, -1 when absent."""
    positions: dict[str, int] = {}
    for name, pattern in kw.SECTION_PATTERNS.items():
        match = pattern.search(lower)
        positions[name] = match.start() if match else -1
    return positions


def _analyze_formatting(text: str) -> _Findings:
    f = _Findings()

    for pattern, issue, severity in kw.FORMATTING_PATTERNS:
        count = len(pattern.findall(text))
        if count:
            f.penalize(_FORMAT_PENALTY[severity], f"{issue} ({count} instances)", severity)

    other = len(kw.OTHER_NON_ASCII.findall(text))
    if other:
        f.penalize(5, f"Contains special characters ({other} instances)", "low")

    column_lines = sum(1 for line in text.splitlines() if len(kw.COLUMN_GAP.findall(line)) >= 2)
    if column_lines:
        f.penalize(
            10,
            f"Possible multi-column layout ({column_lines} lines)",
            "medium",
            "Use a single-column layout; ATS parsers read columns out of order",
        )

    odd_headers = _nonstandard_headers(text)
    if odd_headers:
        f.penalize(
            10,
            f"Non-standard section headers: {', '.join(odd_headers[:3])}",
            "medium",
            "Use standard section headings such as Summary, Experience, Education and Skills",
        )

    if not kw.EMAIL_PATTERN.search(text):
        if kw.GARBLED_EMAIL_PATTERN.search(text):
            f.penalize(20, "Email address appears garbled", "high",
                       "Write your email address in plain form (name@example.com)")
        else:
            f.penalize(20, "No email address found", "high",
                       "Add an email address to your contact information")
    if not kw.PHONE_PATTERN.search(text):
        f.penalize(10, "No phone number found", "medium",
                   "Add a phone number to your contact information")

    if len(text) < 500:
        f.penalize(15, "Resume appears too short (less than 500 characters)", "medium",
                   "Add more detail to your work experience and achievements")
    if len(text) > 4000:
        f.penalize(10, "Resume appears too long (over 4000 characters)", "low",
                   "Consider condensing content to 1-2 pages")

    if kw.BULLET_GLYPHS.search(text):
        f.improve("Replace bullet symbols with simple dashes (-) for better ATS compatibility")

    if not f.issues:
        f.improve("Great formatting! Your resume appears ATS-friendly")
    return f


def _nonstandard_headers(text: str) -> list[str]:
    """Header-like lines (all caps or decorated) that are not standard section names."""
    found: list[str] = []
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    # The first line is usually the candidate's name.
    for line in lines[1:]:
        if kw.DECORATED_HEADER.match(line):
            found.append(line)
            continue
        if _CAPS_HEADER.match(line) and len(line.split()) <= 4:
            name = line.rstrip(":").strip().lower()
            if name not in kw.STANDARD_HEADERS:
                found.append(line.rstrip(":"))
    return found


def _analyze_content(lower: str, positions: dict[str, int]) -> _Findings:
    f = _Findings()

    verbs = [v for v in kw.ACTION_VERBS if re.search(rf"\b{v}\b", lower)]
    if len(verbs) < 5:
        f.penalize(
            10,
            f"Limited use of strong action verbs ({len(verbs)} found)",
            "medium",
            "Use more action verbs like: achieved, managed, led, developed, implemented",
        )

    passive = sum(len(p.findall(lower)) for p in kw.PASSIVE_PATTERNS)
    if passive > 2:
        f.penalize(15, f"Overuse of passive language ({passive} instances)", "medium",
                   "Replace passive phrases with active accomplishments")

    pronouns = len(kw.PRONOUN_PATTERN.findall(lower))
    if pronouns > 3:
        f.penalize(10, "Overuse of personal pronouns", "low",
                   "Remove personal pronouns (I, me, my) for a more professional tone")

    quantified = len(kw.QUANTIFIER_PATTERN.findall(lower))
    if quantified < 3:
        f.penalize(
            15,
            f"Limited quantifiable achievements ({quantified} found)",
            "medium",
            "Add specific numbers, percentages, or metrics to demonstrate impact",
        )

    missing = [name for name in kw.CORE_CONTENT_SECTIONS if positions[name] < 0]
    if missing:
        f.penalize(10 * len(missing), f"Missing core content: {', '.join(missing)}", "high",
                   f"Describe your {', '.join(missing)}")
    return f


def _analyze_keywords(
    lower: str,
    normalized: str,
    target_industry: str | None,
    saturation: float,
    stuffing_threshold: int,
) -> tuple[_Findings, list[str]]:
    industry = (target_industry or "").strip().lower()
    table = kw.INDUSTRY_KEYWORDS.get(industry)
    f = _Findings()
    if table is None:
        table = kw.GENERIC_KEYWORDS
        if industry:
            f.penalize(0, f"Unknown industry '{industry}'; generic professional keywords were used",
                       "info")

    counts = {phrase: count_phrase(normalized, phrase) for phrase in table}
    found = [phrase for phrase in table if counts[phrase] > 0]
    missing = [phrase for phrase in table if counts[phrase] == 0]

    coverage = len(found) / len(table)
    progress = min(coverage / saturation, 1.0)
    f.score = 100.0 * (1.0 - (1.0 - progress) ** 2)

    if coverage < 0.2:
        f.penalize(
            0,
            f"Low keyword coverage ({round(coverage * 100)}% of {len(table)} keywords)",
            "medium",
            "Include more industry-specific keywords and skills",
        )

    stuffed = [phrase for phrase in found if counts[phrase] > stuffing_threshold]
    if stuffed:
        worst = max(stuffed, key=lambda p: (counts[p], -table.index(p)))
        f.penalize(
            10,
            f"Possible keyword stuffing: '{worst}' repeated {counts[worst]} times",
            "medium",
            "Use keywords naturally in context instead of repeating them",
        )

    if industry == "technology" and not kw.TECH_SKILLS_PATTERN.search(lower):
        f.penalize(15, "Missing technical skills section", "medium",
                   "Add a dedicated technical skills section")

    soft = [s for s in kw.SOFT_SKILLS if count_phrase(normalized, s)]
    if len(soft) < 2:
        f.penalize(10, "Limited soft skills mentioned", "low",
                   "Include relevant soft skills like leadership, communication, teamwork")

    return f, missing[:8]


def _analyze_structure(lower: str, positions: dict[str, int]) -> _Findings:
    f = _Findings()

    missing = [name for name, pos in positions.items() if pos < 0]
    if missing:
        f.penalize(
            15 * len(missing),
            f"Missing sections: {', '.join(missing)}",
            "high",
            f"Add the following sections: {', '.join(missing)}",
        )

    experience = positions["work experience"]
    if experience >= 0:
        if positions["contact information"] > experience:
            f.penalize(5, "Contact information appears after work experience", "low",
                       "Place your contact details at the top of the resume")
        if positions["professional summary"] > experience:
            f.penalize(5, "Professional summary appears after work experience", "low",
                       "Move your professional summary above your work experience")

    years = kw.YEAR_PATTERN.findall(lower)
    if len(years) < 2:
        f.penalize(10, "Missing or insufficient date information", "medium",
                   "Include start and end dates for work experience and education")

    styles = [name for name, pattern in kw.DATE_STYLES.items() if pattern.search(lower)]
    styled_years = sum(len(pattern.findall(lower)) for pattern in kw.DATE_STYLES.values())
    if len(years) > styled_years:
        styles.append("year_only")
    if len(styles) > 2:
        f.penalize(5, f"Inconsistent date formats ({len(styles)} styles)", "low",
                   "Use one date format throughout, for example 'Jan 2020 - Mar 2023'")
    return f
