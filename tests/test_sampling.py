from __future__ import annotations

import pytest

from posecast_cli.sampling import EXPRESSIONS, RandomChoice, SequenceChoice, sample_expressions


class TestSampling:
    def test_vocabulary_has_ten_entries(self) -> None:
        assert len(EXPRESSIONS) == 10
        assert len(set(EXPRESSIONS)) == 10

    def test_seeded_source_is_reproducible(self) -> None:
        assert sample_expressions(RandomChoice(7), 5) == sample_expressions(RandomChoice(7), 5)

    def test_sequence_choice_replays_and_cycles(self) -> None:
        source = SequenceChoice([2, 0])
        assert sample_expressions(source, 3) == [EXPRESSIONS[2], EXPRESSIONS[0], EXPRESSIONS[2]]

    def test_sequence_sample_is_distinct(self) -> None:
        assert SequenceChoice([0]).sample(["a", "b", "c"], 3) == ["a", "b", "c"]
        with pytest.raises(ValueError):
            SequenceChoice([0]).sample(["a"], 2)

    def test_sequence_choice_needs_indices(self) -> None:
        with pytest.raises(ValueError):
            SequenceChoice([])
