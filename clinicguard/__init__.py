"""
ClinicGuard Status & Access Decision Core
=========================================

The decision core behind a clinic administration panel.  Normalizes the
validation-status vocabulary shared by patient-count, procedure, and
financial records (including the legacy Indonesian tokens ``disetujui`` and
``ditolak``), and decides which actors may view, edit, delete, restore, or
force-delete sensitive records such as patients.

Both decision components are pure functions over caller-supplied snapshots
and static tables.  HTTP handling, persistence, and rendering belong to the
surrounding application.
"""

__version__ = "0.1.0"
