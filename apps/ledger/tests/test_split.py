import pytest

from apps.ledger.exceptions import InvalidAmountError, NoParticipantsError
from apps.ledger.records import Share
from apps.ledger.split import allocate, split, unique_in_order, validate_amount


class TestSplit:

    def test_tie_break_follows_input_order(self):
        """First remainder participants get the extra unit."""
        assert split(1001, ['A', 'B', 'C']) == [334, 334, 333]

    def test_even_split(self):
        assert split(300, ['you', 'ali', 'sara']) == [100, 100, 100]

    def test_payer_excluded_uneven(self):
        assert split(100, ['A', 'B', 'C']) == [34, 33, 33]

    def test_total_smaller_than_participants(self):
        assert split(2, ['A', 'B', 'C']) == [1, 1, 0]

    def test_single_participant_gets_everything(self):
        assert split(12345, ['A']) == [12345]

    @pytest.mark.parametrize('count', range(1, 51))
    def test_conservation(self, count):
        """Shares sum to the total for every participant count up to 50."""
        participants = [f'm{i}' for i in range(count)]
        for total in (1, 7, 99, 100, 1001, 123457, 99999999):
            shares = split(total, participants)
            assert sum(shares) == total
            assert len(shares) == count
            assert max(shares) - min(shares) <= 1

    @pytest.mark.parametrize('total', [0, -1, -500])
    def test_non_positive_total_rejected(self, total):
        with pytest.raises(InvalidAmountError):
            split(total, ['A'])

    @pytest.mark.parametrize('total', [10.5, float('nan'), '100', True, None])
    def test_non_integer_total_rejected(self, total):
        with pytest.raises(InvalidAmountError):
            split(total, ['A', 'B'])

    def test_no_participants(self):
        with pytest.raises(NoParticipantsError):
            split(100, [])


class TestAllocate:

    def test_pairs_ids_with_amounts(self):
        assert allocate(100, ['A', 'B', 'C']) == [
            Share('A', 34), Share('B', 33), Share('C', 33),
        ]


class TestValidateAmount:

    def test_upper_bound_inclusive(self):
        assert validate_amount(100, max_amount=100) == 100
        with pytest.raises(InvalidAmountError):
            validate_amount(101, max_amount=100)

    def test_unique_in_order_keeps_first_occurrence(self):
        assert unique_in_order(['B', 'A', 'B', 'C', 'A']) == ['B', 'A', 'C']
