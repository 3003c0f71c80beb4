"""Heuristic accessibility scan over a page's HTML snapshot.

Runs a small fixed rule set, not a WCAG engine. Each rule reports at most one
finding whose ``affected_element_count`` is the number of offending elements.
"""

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag

from e2e_benchmark.models.observation import (
    AccessibilityFinding,
    AccessibilitySummary,
    Severity,
)

log = logging.getLogger(__name__)

HELP_BASE_URL = "https://dequeuniversity.com/rules/axe/4.10"

_FONT_SIZE_PX = re.compile(r"font-size\s*:\s*([\d.]+)px", re.IGNORECASE)
_COLOR = re.compile(r"(?:^|;)\s*color\s*:\s*([^;]+)", re.IGNORECASE)
_BACKGROUND = re.compile(r"background(?:-color)?\s*:\s*([^;]+)", re.IGNORECASE)


@dataclass(frozen=True, kw_only=True)
class Rule:
    """A heuristic check counting offending elements in a document."""

    rule_id: str
    severity: Severity
    description: str
    count: Callable[[BeautifulSoup], int]

    @property
    def help_reference(self) -> str:
        """Documentation link of the rule."""
        return f"{HELP_BASE_URL}/{self.rule_id}"


def _has_accessible_name(element: Tag) -> bool:
    return bool(
        element.get_text(strip=True)
        or element.get("aria-label")
        or element.get("aria-labelledby")
    )


def _images_missing_alt(soup: BeautifulSoup) -> int:
    return sum(
        1 for img in soup.find_all("img") if not img.get("alt") and not img.get("role")
    )


def _unnamed_buttons(soup: BeautifulSoup) -> int:
    buttons = soup.find_all("button") + [
        element
        for element in soup.find_all(attrs={"role": "button"})
        if element.name != "button"
    ]
    return sum(1 for button in buttons if not _has_accessible_name(button))


def _unnamed_links(soup: BeautifulSoup) -> int:
    return sum(
        1
        for link in soup.find_all("a", href=True)
        if not _has_accessible_name(link) and not link.find("img", alt=True)
    )


def _missing_lang(soup: BeautifulSoup) -> int:
    html = soup.find("html")
    if isinstance(html, Tag) and html.get("lang"):
        return 0
    return 1


def _unlabeled_inputs(soup: BeautifulSoup) -> int:
    labelled_ids = {label.get("for") for label in soup.find_all("label") if label.get("for")}
    count = 0
    for element in soup.find_all(["input", "select", "textarea"]):
        element_id = element.get("id")
        if element_id and element_id in labelled_ids:
            continue
        if element.get("aria-label") or element.get("aria-labelledby"):
            continue
        count += 1
    return count


def _skipped_heading_levels(soup: BeautifulSoup) -> int:
    skips = 0
    previous = 0
    for heading in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"]):
        level = int(heading.name[1])
        if previous > 0 and level > previous + 1:
            skips += 1
        previous = level
    return skips


def _low_contrast_text(soup: BeautifulSoup) -> int:
    count = 0
    for element in soup.find_all(["p", "span", "a", "li", "td", "th", "label"]):
        style = element.get("style")
        if not style:
            continue
        size = _FONT_SIZE_PX.search(style)
        color = _COLOR.search(style)
        background = _BACKGROUND.search(style)
        if not (size and color and background):
            continue
        same_colour = color.group(1).strip().lower() == background.group(1).strip().lower()
        if float(size.group(1)) < 12 and same_colour:
            count += 1
    return count


def _missing_main_landmark(soup: BeautifulSoup) -> int:
    if soup.find("main") or soup.find(attrs={"role": "main"}):
        return 0
    return 1


RULES: Sequence[Rule] = (
    Rule(
        rule_id="image-alt",
        severity="critical",
        description="Images must have alternate text",
        count=_images_missing_alt,
    ),
    Rule(
        rule_id="button-name",
        severity="critical",
        description="Buttons must have discernible text",
        count=_unnamed_buttons,
    ),
    Rule(
        rule_id="link-name",
        severity="serious",
        description="Links must have discernible text",
        count=_unnamed_links,
    ),
    Rule(
        rule_id="html-has-lang",
        severity="serious",
        description="<html> element must have a lang attribute",
        count=_missing_lang,
    ),
    Rule(
        rule_id="label",
        severity="critical",
        description="Form elements must have labels",
        count=_unlabeled_inputs,
    ),
    Rule(
        rule_id="heading-order",
        severity="moderate",
        description="Heading levels should increase by one",
        count=_skipped_heading_levels,
    ),
    Rule(
        rule_id="color-contrast",
        severity="serious",
        description="Elements must have sufficient color contrast",
        count=_low_contrast_text,
    ),
    Rule(
        rule_id="landmark-main-is-top-level",
        severity="moderate",
        description="Page should contain a main landmark",
        count=_missing_main_landmark,
    ),
)


def scan_html(html: str, rules: Sequence[Rule] = RULES) -> AccessibilitySummary:
    """Run the heuristic rules against an HTML document.

    Args:
        html: Serialized page content
        rules: Rules to apply, in reporting order

    Returns:
        Summary holding one finding per violated rule

    """
    soup = BeautifulSoup(html, "html.parser")
    findings: list[AccessibilityFinding] = []
    for rule in rules:
        affected = rule.count(soup)
        if affected > 0:
            findings.append(
                AccessibilityFinding(
                    rule_id=rule.rule_id,
                    severity=rule.severity,
                    description=rule.description,
                    help_reference=rule.help_reference,
                    affected_element_count=affected,
                )
            )

    summary = AccessibilitySummary.from_findings(findings)
    log.debug(
        "Accessibility scan: %d finding(s), %d critical",
        summary.total_findings,
        summary.critical,
    )
    return summary
