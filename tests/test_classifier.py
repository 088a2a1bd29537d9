from __future__ import annotations

from core.classifier import (
    CodeBlock,
    ContentClassifier,
    build_link_patterns,
    get_code_blocks,
    get_links,
)

DOMAINS = ["pastebin.com", "gist.github.com"]


def test_code_block_with_language_tag() -> None:
    blocks = get_code_blocks("check this out ```js\nconsole.log(1)\n```")
    assert blocks == [CodeBlock(lang="js", code="console.log(1)")]


def test_code_block_trims_blank_lines_inside_fence() -> None:
    blocks = get_code_blocks("```py\n\n\nprint('hi')\nprint('there')\n\n\n```")
    assert blocks == [CodeBlock(lang="py", code="print('hi')\nprint('there')")]


def test_code_block_without_language_tag() -> None:
    blocks = get_code_blocks("```\nSELECT 1;\n```")
    assert blocks == [CodeBlock(lang=None, code="SELECT 1;")]


def test_code_block_matches_nearest_closing_fence() -> None:
    blocks = get_code_blocks("```a\none\n``` text ```b\ntwo\n```")
    assert [block.code for block in blocks] == ["one", "two"]
    assert [block.lang for block in blocks] == ["a", "b"]


def test_spaced_language_tag_is_still_code() -> None:
    classifier = ContentClassifier(DOMAINS)
    result = classifier.classify("see ``` js\nconsole.log(2)\n``` thanks")
    assert result.has_code
    assert result.code_blocks[0].lang is None
    assert result.code_blocks[0].code.endswith("console.log(2)")


def test_single_backticks_are_not_code() -> None:
    classifier = ContentClassifier(DOMAINS)
    assert not classifier.classify("use `pip install` please").has_code


def test_links_on_allow_listed_domains_are_extracted() -> None:
    patterns = build_link_patterns(DOMAINS)
    text = "paste: https://pastebin.com/abc123 and http://gist.github.com/u/42#file-x"
    assert get_links(text, patterns) == [
        "https://pastebin.com/abc123",
        "http://gist.github.com/u/42#file-x",
    ]


def test_links_with_subdomain_are_extracted() -> None:
    classifier = ContentClassifier(["pastebin.com"])
    result = classifier.classify("raw at https://raw.pastebin.com/xyz?dl=1")
    assert result.links == ["https://raw.pastebin.com/xyz?dl=1"]


def test_links_on_other_domains_are_excluded() -> None:
    classifier = ContentClassifier(DOMAINS)
    result = classifier.classify("https://example.com/pastebin.com https://hastebin.com/abc")
    assert result.links == []
    assert not result.relevant


def test_domain_match_is_case_sensitive() -> None:
    classifier = ContentClassifier(["pastebin.com"])
    assert classifier.classify("https://PASTEBIN.COM/abc").links == []


def test_domain_dots_are_literal() -> None:
    classifier = ContentClassifier(["pastebin.com"])
    assert classifier.classify("https://pastebinXcom/abc").links == []


def test_domain_must_end_the_host() -> None:
    classifier = ContentClassifier(["pastebin.com"])
    assert classifier.classify("https://pastebin.com.evil.org/x").links == []
    assert classifier.classify("https://pastebin.community/x").links == []


def test_link_at_end_of_sentence_is_kept() -> None:
    classifier = ContentClassifier(["pastebin.com"])
    assert classifier.classify("grab it from https://pastebin.com.").links == [
        "https://pastebin.com"
    ]


def test_links_grouped_by_domain_order() -> None:
    classifier = ContentClassifier(DOMAINS)
    text = "https://gist.github.com/a then https://pastebin.com/b"
    assert classifier.classify(text).links == [
        "https://pastebin.com/b",
        "https://gist.github.com/a",
    ]


def test_plain_text_is_not_relevant() -> None:
    classifier = ContentClassifier(DOMAINS)
    assert not classifier.is_relevant("hello everyone, how is it going?")
    assert not classifier.classify("hello everyone").relevant


def test_is_relevant_on_code_or_link() -> None:
    classifier = ContentClassifier(DOMAINS)
    assert classifier.is_relevant("```\nx = 1\n```")
    assert classifier.is_relevant("see https://pastebin.com/abc")


def test_no_domains_means_only_code_is_relevant() -> None:
    classifier = ContentClassifier([])
    assert not classifier.is_relevant("https://pastebin.com/abc")
    assert classifier.is_relevant("```\nx\n```")
