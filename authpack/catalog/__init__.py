"""
Static reference catalog.

Read-only data the services seed into the database (pack templates,
permission ecosystems) or consult directly (questionnaires, training
registry, FCA checklist). Nothing here touches the database.
"""
