"""
Unit Tests for day pools and the pool allocator
"""

import pytest

from leave_planner.domain.exceptions import PoolExhaustedError
from leave_planner.domain.models import BenefitTier, Caregiver, DayPool
from leave_planner.domain.services.day_pool_allocator import allocate_day_pools

C1 = Caregiver.CAREGIVER_1
C2 = Caregiver.CAREGIVER_2


@pytest.mark.unit
class TestAllocateDayPools:

    def test_proportional_split_with_reservation(self, rules):
        pools = allocate_day_pools(10, 5, rules)
        assert pools[C1].standard == 230
        assert pools[C2].standard == 160
        assert pools[C1].minimum == 60
        assert pools[C2].minimum == 30

    def test_even_split_when_no_preference(self, rules):
        pools = allocate_day_pools(0, 0, rules)
        assert pools[C1].standard == pools[C2].standard == 195
        assert pools[C1].minimum == pools[C2].minimum == 45

    def test_uneven_split(self, rules):
        pools = allocate_day_pools(12, 3, rules)
        assert (pools[C1].standard, pools[C2].standard) == (258, 132)
        assert (pools[C1].minimum, pools[C2].minimum) == (72, 18)

    def test_one_sided_preference_keeps_other_reservation(self, rules):
        pools = allocate_day_pools(15, 0, rules)
        assert pools[C2].standard == 90
        assert pools[C2].minimum == 0
        assert pools[C1].standard == 300

    @pytest.mark.parametrize("months", [(10, 5), (0, 0), (1, 17), (7.5, 2.25), (-3, float("nan"))])
    def test_tier_totals_are_conserved(self, rules, months):
        pools = allocate_day_pools(months[0], months[1], rules)
        assert pools[C1].standard + pools[C2].standard == rules.day_quotas.standard_days
        assert pools[C1].minimum + pools[C2].minimum == rules.day_quotas.minimum_days
        assert all(p.standard >= 0 and p.minimum >= 0 for p in pools.values())


@pytest.mark.unit
class TestDayPool:

    def test_reserved_days_are_not_transferable(self):
        pool = DayPool(standard=160, minimum=30, reserved_total=90)
        assert pool.reserved_standard == 90
        assert pool.transferable(BenefitTier.STANDARD) == 70
        assert pool.transferable(BenefitTier.MINIMUM) == 30

    def test_owner_use_releases_reservation(self):
        pool = DayPool(standard=160, minimum=30, reserved_total=90)
        pool.consume(BenefitTier.STANDARD, 100)
        assert pool.reserved_standard == 0
        assert pool.transferable(BenefitTier.STANDARD) == 60

    def test_transfer_beyond_transferable_raises(self):
        pool = DayPool(standard=100, minimum=0, reserved_total=90)
        with pytest.raises(PoolExhaustedError):
            pool.consume(BenefitTier.STANDARD, 11, by_owner=False)
        pool.consume(BenefitTier.STANDARD, 10, by_owner=False)
        assert pool.standard == 90
        assert pool.transferable(BenefitTier.STANDARD) == 0

    def test_employer_top_up_draws_standard_pool(self):
        pool = DayPool(standard=50, minimum=10)
        pool.consume(BenefitTier.EMPLOYER_TOP_UP, 20)
        assert pool.standard == 30
        assert pool.available(BenefitTier.EMPLOYER_TOP_UP) == 30

    def test_consume_beyond_available_raises(self):
        pool = DayPool(standard=5, minimum=2)
        with pytest.raises(PoolExhaustedError):
            pool.consume(BenefitTier.MINIMUM, 3)
        assert pool.minimum == 2

    def test_refund_restores_days(self):
        pool = DayPool(standard=100, minimum=10, reserved_total=90)
        pool.consume(BenefitTier.STANDARD, 40)
        pool.refund(BenefitTier.STANDARD, 15)
        assert pool.standard == 75
        assert pool.owner_standard_used == 25

    def test_filler_tier_has_no_pool(self):
        pool = DayPool(standard=10, minimum=10)
        assert pool.available(BenefitTier.NONE) == 0
        pool.consume(BenefitTier.NONE, 0)
        assert pool.total == 20

    def test_negative_pool_rejected(self):
        with pytest.raises(ValueError):
            DayPool(standard=-1, minimum=0)
