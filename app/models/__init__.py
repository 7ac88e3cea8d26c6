"""
Production Approval Workflow
Model package: shared SQLAlchemy handle.

Domain modules:
    - auth:       User directory, Role enum, Actor
    - location:   Manufacturing sites and their alias spellings
    - status:     Project status registry (labels, colours, archivability)
    - project:    ManufacturingProject, ProjectLocationApproval, transition table
    - history:    ProjectHistory (append-only audit trail)
    - scheduling: ScheduledJob run ledger, EmailLog
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
