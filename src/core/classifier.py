"""Content classification logic (core domain).

A message is relevant when it carries a fenced code block or a link to one of
the allow-listed domains. Classification works on raw text only.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable, List, Optional, Sequence

# ```lang\n ... ``` with blank lines inside the fence trimmed.
CODE_BLOCK_RE = re.compile(r"```(([a-z]+)\n)?\n*([\s\S]*?)\n*```")

# Characters allowed in the path/query/fragment part of a link.
_URL_PATH_CHARS = r"[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=]"

# The host must end at the domain: "pastebin.com.evil.org" is not allow-listed,
# but a sentence-ending "pastebin.com." still is.
_HOST_END = r"(?![\w-]|\.\w)"


@dataclass(frozen=True)
class CodeBlock:
    """A fenced code block extracted from message text."""

    lang: Optional[str]
    code: str


@dataclass(frozen=True)
class Classification:
    """Classifier output for one piece of text."""

    code_blocks: List[CodeBlock]
    links: List[str]

    @property
    def has_code(self) -> bool:
        return bool(self.code_blocks)

    @property
    def relevant(self) -> bool:
        return self.has_code or bool(self.links)


def get_code_blocks(text: str) -> List[CodeBlock]:
    """Return every fenced code block in the text, in order of appearance."""

    return [
        CodeBlock(lang=match.group(2), code=match.group(3))
        for match in CODE_BLOCK_RE.finditer(text)
    ]


def build_link_patterns(domains: Iterable[str]) -> List[re.Pattern]:
    """Compile one URL pattern per allow-listed domain.

    The domain is matched literally and case-sensitively; an optional
    subdomain and an optional path are accepted around it.
    """

    return [
        re.compile(rf"https?://([^\s/]+?\.)?{re.escape(domain)}{_HOST_END}(/{_URL_PATH_CHARS}*)?")
        for domain in domains
    ]


def get_links(text: str, patterns: Sequence[re.Pattern]) -> List[str]:
    """Return all allow-listed links, grouped by domain in configured order."""

    links: List[str] = []
    for pattern in patterns:
        links.extend(match.group(0) for match in pattern.finditer(text))
    return links


class ContentClassifier:
    """Classifier bound to a configured set of allow-listed domains."""

    def __init__(self, domains: Iterable[str]) -> None:
        self._domains = list(domains)
        self._patterns = build_link_patterns(self._domains)

    @property
    def domains(self) -> List[str]:
        return list(self._domains)

    def classify(self, text: str) -> Classification:
        return Classification(
            code_blocks=get_code_blocks(text),
            links=get_links(text, self._patterns),
        )

    def has_code(self, text: str) -> bool:
        return CODE_BLOCK_RE.search(text) is not None

    def has_links(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self._patterns)

    def is_relevant(self, text: str) -> bool:
        """Gate for identity creation and revision storage."""

        return self.has_code(text) or self.has_links(text)
