"""
Unit tests for voucher eligibility.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.services.voucher_service import (
    is_voucher_eligible, resolve_eligible_vouchers, select_voucher
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def voucher(id, seller_id=None, start=None, end=None):
    return SimpleNamespace(id=id, seller_id=seller_id, start_date=start, end_date=end)


class TestValidityWindow:

    def test_open_window(self):
        assert is_voucher_eligible(voucher(1), NOW, 'seller-1') is True

    def test_not_started(self):
        assert is_voucher_eligible(voucher(1, start=NOW + timedelta(minutes=1)), NOW, 'seller-1') is False

    def test_expired(self):
        assert is_voucher_eligible(voucher(1, end=NOW - timedelta(minutes=1)), NOW, 'seller-1') is False

    def test_window_bounds_are_inclusive(self):
        assert is_voucher_eligible(voucher(1, start=NOW, end=NOW), NOW, None) is True

    def test_naive_dates_are_utc(self):
        naive_end = datetime(2026, 10, 19, 11, 59)
        assert is_voucher_eligible(voucher(1, end=naive_end), NOW, None) is False

    def test_other_timezone(self):
        manila = timezone(timedelta(hours=8))
        # 19:30 Manila is 11:30 UTC
        end = datetime(2026, 10, 19, 19, 30, tzinfo=manila)
        assert is_voucher_eligible(voucher(1, end=end), NOW, None) is False


class TestSellerScope:

    def test_platform_voucher_without_seller(self):
        assert is_voucher_eligible(voucher(1), NOW, None) is True

    def test_platform_voucher_with_seller(self):
        assert is_voucher_eligible(voucher(1), NOW, 'seller-9') is True

    def test_matching_seller(self):
        assert is_voucher_eligible(voucher(1, seller_id='seller-1'), NOW, 'seller-1') is True

    def test_seller_ids_compared_as_strings(self):
        assert is_voucher_eligible(voucher(1, seller_id=42), NOW, '42') is True

    def test_other_seller(self):
        assert is_voucher_eligible(voucher(1, seller_id='seller-2'), NOW, 'seller-1') is False

    def test_seller_voucher_with_no_cart_seller(self):
        assert is_voucher_eligible(voucher(1, seller_id='seller-1'), NOW, None) is False


class TestResolve:

    def test_preserves_source_order(self):
        candidates = [
            voucher(3),
            voucher(1, seller_id='seller-2'),
            voucher(2, seller_id='seller-1'),
            voucher(4, end=NOW - timedelta(days=1)),
        ]
        eligible = resolve_eligible_vouchers(candidates, NOW, 'seller-1')
        assert [v.id for v in eligible] == [3, 2]

    def test_select_by_id(self):
        eligible = [voucher(1), voucher(2)]
        assert select_voucher(eligible, '2').id == 2

    def test_select_unknown_id(self):
        assert select_voucher([voucher(1)], 99) is None

    def test_select_nothing(self):
        assert select_voucher([voucher(1)], None) is None
        assert select_voucher([voucher(1)], '') is None


class TestLoadFromDatabase:

    def test_only_eligible_active_vouchers(
        self, session, now, seller_voucher, platform_voucher, other_seller_voucher, expired_voucher
    ):
        from app.services.voucher_service import get_eligible_vouchers

        eligible = get_eligible_vouchers(session, 'seller-1', now=now)
        assert [v.id for v in eligible] == [seller_voucher.id, platform_voucher.id]

    def test_inactive_voucher_is_skipped(self, session, now, platform_voucher):
        from app.services.voucher_service import get_eligible_vouchers

        platform_voucher.status = 'paused'
        session.commit()

        assert get_eligible_vouchers(session, 'seller-1', now=now) == []
