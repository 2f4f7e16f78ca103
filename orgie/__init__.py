"""
Orgie — Recurring Event Scheduling & Attendance Tracking
=========================================================
Users create one-time or recurring sporting events, generate concrete
time slots ("terms") from a recurrence rule, and track who attends each
slot (registered users as well as event-scoped guests) together with
optional team win/draw/loss tallies.

Package layout::

    orgie/
    ├── config.py          # YAML → typed Python config
    ├── errors.py          # Domain error taxonomy + HTTP status mapping
    ├── logging_config.py  # Text / JSON log formatting
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # ORM models (users, events, terms)
    ├── engine/
    │   ├── attendees.py   # Attendee / Guest value types
    │   ├── recurrence.py  # Day normalisation + weekday expansion
    │   ├── permissions.py # Owner / administrator / patron checks
    │   ├── archive.py     # Active vs. archived terms
    │   └── stats.py       # Team outcomes + cross-term statistics
    ├── services/
    │   ├── event_service.py       # Event CRUD + dashboard
    │   ├── term_service.py        # Generation, archive, team tallies
    │   ├── attendance_service.py  # Join / leave toggles
    │   ├── guest_service.py       # Guest registry
    │   ├── stats_service.py       # Statistics read model
    │   ├── user_service.py        # Profiles + display names
    │   └── migration_service.py   # Legacy data upgrades
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine / config / principal dependencies
        ├── schemas.py     # Request models + response serializers
        └── routes/        # Events, terms, users
"""

__version__ = "0.1.0"
