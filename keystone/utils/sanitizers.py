import bleach


def sanitize_string(text, allowed_tags=None):
    """Sanitize a string by removing HTML tags and stripping whitespace"""
    if text is None:
        return ''

    if allowed_tags:
        # Allow specific HTML tags
        text = bleach.clean(str(text), tags=allowed_tags, strip=True)
    else:
        # Remove all HTML tags
        text = bleach.clean(str(text), tags=[], strip=True)

    return text.strip()


def sanitize_optional(text):
    """Like sanitize_string but keeps None for absent values"""
    if text is None:
        return None
    return sanitize_string(text) or None
