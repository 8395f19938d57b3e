import re

from applylink.text import any_match, has_job_content, is_soft_404, strip_html


def test_strip_html_keeps_paragraph_breaks_and_decodes_entities():
    html = "<p>Trade &amp; settle</p><ul><li>One</li><li>Two</li></ul>Line<br/>break&nbsp;here"
    assert strip_html(html) == "Trade & settle\nOne\nTwo\nLine\nbreak here"


def test_strip_html_collapses_blank_runs():
    assert strip_html("<p>a</p>\n\n\n\n<p>b</p>") == "a\n\nb"
    assert strip_html("") == ""


def test_job_content_beats_soft_404_phrasing():
    html = "<h1>Analyst</h1><p>Page not found? Not here.</p><h2>Responsibilities</h2>"
    assert has_job_content(html)
    assert not is_soft_404(html)


def test_soft_404_phrases():
    assert is_soft_404("<p>Sorry, this job is no longer available.</p>")
    assert is_soft_404("<p>No positions found matching your search</p>")
    assert not is_soft_404("<p>Welcome to our site</p>")


def test_soft_404_only_scans_the_head_of_the_page():
    html = "x" * 100 + "<p>page not found</p>"
    assert is_soft_404(html, limit=200)
    assert not is_soft_404(html, limit=50)


def test_any_match():
    patterns = (re.compile("a"), re.compile("b"))
    assert any_match(patterns, "zzb")
    assert not any_match(patterns, "zzz")


def test_soft_404_gate_ignores_what_youll_do():
    html = "<p>What you'll do</p><p>Page not found</p>"
    assert is_soft_404(html)
    assert has_job_content(html)
