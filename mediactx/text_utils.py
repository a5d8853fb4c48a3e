"""
Text utilities - markup stripping for surrounding-context fragments
"""

from bs4 import BeautifulSoup


def strip_markup(text: str) -> str:
    """
    Strip markup from an HTML/JSX fragment and return clean text content

    Fragments are slices of a larger document, so they may hold unclosed
    elements. An unclosed <script> or <style> swallows the rest of the
    fragment.

    Args:
        text: Raw markup fragment

    Returns:
        Text with script/style elements and tags removed, whitespace collapsed
    """
    if not text.strip():
        return ''

    soup = BeautifulSoup(text, 'lxml')

    # Remove script and style elements
    for tag in soup(['script', 'style']):
        tag.decompose()

    return ' '.join(soup.get_text(separator=' ').split())


def format_message(message: str, *args) -> str:
    """Fill {0}, {1}, ... placeholders in a message"""
    for index, arg in enumerate(args):
        message = message.replace(f"{{{index}}}", str(arg))
    return message
