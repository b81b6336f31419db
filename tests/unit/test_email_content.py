from app.utils.email_content import email_to_content, html_to_text


def test_plain_text_preferred():
    assert email_to_content("  plain body ", "<p>html</p>", "snippet") == "plain body"


def test_html_converted_when_no_plain_text():
    html = "<html><head><style>p {color: red}</style></head><body><p>Hello</p><p>World</p></body></html>"

    assert email_to_content("", html, "snippet") == "Hello World"


def test_snippet_fallback():
    assert email_to_content(None, None, "just the snippet") == "just the snippet"
    assert email_to_content("   ", "<div></div>", "snippet") == "snippet"


def test_truncates_to_max_length():
    assert email_to_content("a" * 50, None, None, max_length=10) == "a" * 10


def test_html_to_text_drops_scripts():
    assert html_to_text("<script>alert(1)</script><b>Visible</b>") == "Visible"
