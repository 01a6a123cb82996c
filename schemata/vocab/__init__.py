"""Vocabulary import adapters.

External vocabulary formats are turned into concepts by an adapter with a
single ``parse_concepts(raw)`` capability; the store never parses them itself.
"""
