"""
Guincoin ledger and transfer engine.

Subpackages:
    ledger: Accounts, transactions and the LedgerService
    state_machines: Status/type choices and the credit/debit table
    models: Allotment policies, escrowed transfers, transfer limits
    services: Allotment, transfer, claim, command and report services
"""
