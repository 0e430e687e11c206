"""Context system — hierarchical config + typed entity storage.

Layout:
    repo/
    ├── .protokoll/
    │   ├── config.yaml                # Merged with ancestors, closest wins
    │   └── context/                   # Legacy entity storage (fallback)
    └── context/                       # Entity storage (or config `contextDirectory`)
        ├── people/<id>.yaml
        ├── projects/<id>.yaml
        ├── companies/<id>.yaml
        ├── terms/<id>.yaml
        └── ignored/<id>.yaml

Entry point is `protokoll.core.Context`.
"""
