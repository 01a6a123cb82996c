"""Localized values: per-language strings used for labels and descriptions.

The system always constructs values with both ``de`` and ``en`` keys.  Older
schema files may carry a plain string instead; that form is accepted when
reading and normalized to the pair on the first edit.
"""

from __future__ import annotations

from typing import Optional, Union

LANGUAGES: tuple[str, ...] = ("de", "en")

LocalizedValue = dict[str, str]
LocalizedLike = Union[LocalizedValue, str]


def localized(value: Optional[LocalizedLike], default: str = "") -> LocalizedValue:
    """Normalize *value* to a mapping that has every language key.

    A plain string is used for every language; a partial mapping is filled
    with *default* for the missing languages.  Extra languages are kept.
    """
    if value is None:
        return {lang: default for lang in LANGUAGES}
    if isinstance(value, str):
        return {lang: value for lang in LANGUAGES}
    result = {lang: default for lang in LANGUAGES}
    result.update(value)
    return result


def set_localized(value: Optional[LocalizedLike], lang: str, text: str) -> LocalizedValue:
    """Return a new localized value with *lang* set to *text*."""
    result = localized(value)
    result[lang] = text
    return result


def text_for(value: Optional[LocalizedLike], lang: str = "de") -> str:
    """Pick the text for *lang*, falling back to any non-empty language."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if value.get(lang):
        return value[lang]
    for text in value.values():
        if text:
            return text
    return ""
