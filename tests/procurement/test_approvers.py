"""Tests for approval routing helpers."""

from __future__ import annotations

import base64

from src.procurement.approvers import (
    build_approver_link,
    build_delegate_filter,
    build_fal_filter,
    join_delegate_emails,
    map_approvers,
)


class TestFALFilter:
    """Tests for the approval-limit filter."""

    def test_all_criteria(self) -> None:
        criteria = {"Currency": "GBP", "CompanyCode": "ZB01", "PurchasingGroup": "P01", "Amount": "2500"}

        assert build_fal_filter(criteria) == (
            "Waers eq 'GBP' and Bukrs eq 'ZB01' and Ekgrp eq 'P01' and Netwr eq 2500"
        )

    def test_fractional_amount(self) -> None:
        assert build_fal_filter({"Amount": 99.5}) == "Netwr eq 99.5"

    def test_empty_criteria(self) -> None:
        assert build_fal_filter({}) == ""


class TestMapApprovers:
    """Tests for level flag mapping."""

    def test_levels_present_and_missing(self) -> None:
        records = [
            {"Stepn": "1", "SmtpAddr": "First.Approver@Example.com"},
            {"Stepn": 3, "SmtpAddr": "THIRD@example.com"},
        ]

        approvers = map_approvers(records)

        assert approvers["L1Exist"] == "true"
        assert approvers["L1email"] == "first.approver@example.com"
        assert approvers["L2Exist"] == "false"
        assert approvers["L2email"] == ""
        assert approvers["L3email"] == "third@example.com"
        assert len(approvers) == 16

    def test_first_record_per_step_wins(self) -> None:
        records = [{"Stepn": "2", "SmtpAddr": "a@example.com"}, {"Stepn": "2", "SmtpAddr": "b@example.com"}]
        assert map_approvers(records)["L2email"] == "a@example.com"

    def test_no_records(self) -> None:
        approvers = map_approvers([])
        assert all(approvers[f"L{level}Exist"] == "false" for level in range(1, 9))


class TestDelegates:
    """Tests for delegate lookups."""

    def test_filter_upper_cases_address(self) -> None:
        assert build_delegate_filter({"smtp_addr_p": "boss@example.com"}) == "smtp_addr_p eq 'BOSS@EXAMPLE.COM'"

    def test_filter_without_address(self) -> None:
        assert build_delegate_filter({}) == ""

    def test_join_emails(self) -> None:
        records = [{"smtp_addr_r": "A@Example.com"}, {"smtp_addr_r": "b@example.com"}]
        assert join_delegate_emails(records) == "a@example.com,b@example.com"

    def test_join_non_list(self) -> None:
        assert join_delegate_emails({"smtp_addr_r": "a@example.com"}) == ""


class TestApproverLink:
    """Tests for review link generation."""

    @staticmethod
    def _decode(url: str) -> str:
        encoded = url.split("(value='", 1)[1].rstrip("')")
        return base64.b64decode(encoded).decode("utf-8")

    def test_link_encodes_context(self) -> None:
        url = build_approver_link("https://ui.example.com/prreview", "L1", "a@example.com", "wf-1")

        assert url.startswith("https://ui.example.com/prreview(value='")
        assert self._decode(url) == "workflowid=wf-1&role=L1&email=a@example.com"

    def test_delegate_is_appended(self) -> None:
        url = build_approver_link("https://ui.example.com/prreview", "L2", "a@example.com", "wf-1", "d@example.com")
        assert self._decode(url).endswith("&delegateapprover=d@example.com")

    def test_blank_delegate_is_ignored(self) -> None:
        url = build_approver_link("https://ui.example.com/prreview", "L2", "a@example.com", "wf-1", "  ")
        assert "delegateapprover" not in self._decode(url)
