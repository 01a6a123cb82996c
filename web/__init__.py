"""Web surface for the schemata repository."""
