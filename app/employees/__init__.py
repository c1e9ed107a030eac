"""
Employees - identity records for Guincoin account holders.

The employee record is the stable, already-authenticated identity that
the ledger works with. Authentication itself (OAuth, sessions) is handled
outside this app; it calls EmployeeService.provision() on sign-in.
"""
