"""
Synthetic Scenario: Daily Patient-Count Validation Walkthrough
==============================================================

Demonstrates the ClinicGuard decision core end to end with synthetic data.

Steps demonstrated:
  1. Load the policy table from YAML
  2. Check patient-record access for several staff members
  3. Read a column of mixed legacy/canonical statuses and report on it
  4. Walk a patient-count entry through revision and approval
  5. Reset the approval after a critical field edit
  6. Export the audit log for review

Usage:
    python -m examples.synthetic_scenario
    # or: python examples/synthetic_scenario.py
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

# Ensure the project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clinicguard.access import AccessDeniedError, allowed_actions, lookup_includes_trashed
from clinicguard.audit import AuditLog
from clinicguard.config import DEFAULT_POLICY_TABLE, load_policy_table_from_yaml
from clinicguard.models import Actor, ResourceType, ValidationRecord
from clinicguard.report import generate_status_report
from clinicguard.status import color_of, label_of, normalize
from clinicguard.workflow import ValidationWorkflow


def _banner(text: str) -> None:
    print(f"\n{'=' * 60}")
    print(f"  {text}")
    print(f"{'=' * 60}\n")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    _banner("ClinicGuard Synthetic Scenario: Patient-Count Validation")

    # ------------------------------------------------------------------
    # Step 1: Load policy table
    # ------------------------------------------------------------------
    _banner("Step 1: Load Policy Table")

    audit_log = AuditLog()
    sample_yaml = Path(__file__).parent / "policy_table.yaml"
    if sample_yaml.exists():
        table = load_policy_table_from_yaml(
            sample_yaml, audit_log=audit_log, clinic_id="klinik_demo"
        )
        print(f"Loaded policy table from {sample_yaml.name}")
    else:
        table = DEFAULT_POLICY_TABLE
        print("Using built-in default policy table")

    # ------------------------------------------------------------------
    # Step 2: Patient access checks
    # ------------------------------------------------------------------
    _banner("Step 2: Patient Access Matrix")

    staff = [
        Actor(actor_id="dr_rina", clinic_id="klinik_demo", roles={"dokter"}),
        Actor(actor_id="petugas_andi", clinic_id="klinik_demo", roles={"petugas"},
              permissions={"delete_pasien"}),
        Actor(actor_id="admin_sari", clinic_id="klinik_demo", roles={"admin"}),
        Actor(actor_id="bendahara_tono", clinic_id="klinik_demo", roles={"bendahara"}),
    ]
    for actor in staff:
        matrix = allowed_actions(actor, ResourceType.PATIENT, table=table)
        granted = [action for action, ok in matrix.items() if ok]
        print(f"{actor.actor_id:<16} {actor.role_label:<10} -> {granted}")
        print(f"{'':<16} include trashed rows: "
              f"{lookup_includes_trashed(actor, ResourceType.PATIENT, table=table)}")

    # ------------------------------------------------------------------
    # Step 3: Status column report
    # ------------------------------------------------------------------
    _banner("Step 3: Status Distribution")

    column = ["pending", "approved", "disetujui", "disetujui", "ditolak",
              "need_revision", None, "selesai"]
    report = generate_status_report(column)
    print(json.dumps(report.to_dict(), indent=2))
    if report.has_legacy:
        print(f"\n{report.legacy_total} rows still carry legacy tokens.")

    token = "disetujui"
    canonical = normalize(token)
    print(f"\n{token!r} -> {canonical!r} -> {label_of(canonical)} ({color_of(canonical).value})")

    # ------------------------------------------------------------------
    # Step 4: Validation lifecycle
    # ------------------------------------------------------------------
    _banner("Step 4: Validation Lifecycle")

    petugas, bendahara = staff[1], staff[3]
    workflow = ValidationWorkflow(audit_log, table=table)

    record = ValidationRecord(
        clinic_id="klinik_demo",
        resource_type=ResourceType.PATIENT_COUNT,
        submitted_by=petugas.actor_id,
    )
    print(f"Created record {record.record_id} [{label_of(record.status)}]")

    try:
        workflow.approve(record, petugas)
    except AccessDeniedError as exc:
        print(f"Denied: {exc}")

    workflow.request_revision(record, bendahara, "Jumlah pasien BPJS belum diisi")
    print(f"After revision request: {label_of(record.status)}")
    workflow.resubmit(record, petugas)
    print(f"After resubmit: {label_of(record.status)}")
    workflow.approve(record, bendahara)
    print(f"After approval: {label_of(record.status)} by {record.validated_by}")

    # ------------------------------------------------------------------
    # Step 5: Critical edit resets approval
    # ------------------------------------------------------------------
    _banner("Step 5: Critical Field Edit")

    workflow.reset_after_edit(record, petugas, ["jumlah_pasien_umum", "catatan"])
    print(f"Status: {label_of(record.status)}")
    print(f"Notes:  {record.validation_notes}")

    # ------------------------------------------------------------------
    # Step 6: Audit export
    # ------------------------------------------------------------------
    _banner("Step 6: Audit Log Export")

    export = audit_log.export_for_review(clinic_id="klinik_demo")
    print(json.dumps(export["export_metadata"], indent=2))
    for entry in export["entries"]:
        print(f"  {entry['event_type']:<24} {entry['actor_id']:<16} {entry['metadata']}")

    valid, broken_at = audit_log.verify_chain()
    print(f"\nFull chain verification: valid={valid}, broken_at={broken_at}")

    _banner("Scenario Complete")
    print("All data was synthetic.")


if __name__ == "__main__":
    main()
