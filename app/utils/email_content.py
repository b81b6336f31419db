"""
Plain-text extraction for model prompts.
"""

from bs4 import BeautifulSoup


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "head"]):
        tag.decompose()
    return soup.get_text(separator=" ", strip=True)


def email_to_content(
    text_plain: str | None,
    text_html: str | None,
    snippet: str | None,
    max_length: int | None = None,
) -> str:
    """
    Best available body text: text/plain, else text/html converted to text,
    else the Gmail snippet.
    """
    content = ""
    if text_plain and text_plain.strip():
        content = text_plain.strip()
    elif text_html and text_html.strip():
        content = html_to_text(text_html)

    if not content:
        content = (snippet or "").strip()

    if max_length and len(content) > max_length:
        content = content[:max_length]

    return content
