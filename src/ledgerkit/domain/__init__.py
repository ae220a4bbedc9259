"""Domain layer for ledgerkit.

Services are imported from their modules (``ledgerkit.domain.journal``,
``ledgerkit.domain.reconciliation``, ...); the database layer imports
``ledgerkit.domain.entities`` directly, so this package stays import-free.
"""
