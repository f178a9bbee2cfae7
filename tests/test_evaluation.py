"""Tests for the multi-start evaluation."""
import csv
import logging

import numpy as np
import pytest

from tsp.evaluation_tsp import MultiStartEvaluation
from tsp.instance import TSPInstance
from tsp.stopping import MaxEpochs


@pytest.fixture
def instance(random_matrix):
    return TSPInstance("euclidean", np.zeros((10, 2)), random_matrix)


class TestMultiStartEvaluation:
    def test_one_row_per_seed_in_seed_order(self, instance, tmp_path):
        output = tmp_path / "results.csv"
        evaluator = MultiStartEvaluation(instance, seeds=[5, 1, 3], stop_factory=lambda: MaxEpochs(5),
                                         num_threads=2, output_csv_path=str(output), show_progress=False)
        results = evaluator.evaluate()

        assert [row['seed'] for row in results] == [5, 1, 3]
        for row in results:
            assert row['epochs'] == 5
            assert row['steps'] == 5 * 99
            assert sorted(int(c) for c in row['tour'].split()) == list(range(1, 11))
            assert row['tour'].split()[0] == "1"

        with open(output, newline='') as f:
            rows = list(csv.DictReader(f))
        assert [row['seed'] for row in rows] == ["5", "1", "3"]
        assert set(rows[0]) == {'seed', 'best_cost', 'epochs', 'steps', 'solve_time', 'tour'}

    def test_same_seeds_same_results(self, instance):
        def run():
            evaluator = MultiStartEvaluation(instance, seeds=[1, 2], stop_factory=lambda: MaxEpochs(3),
                                             output_csv_path=None, show_progress=False,
                                             initial_temperature=100.0)
            return [(row['best_cost'], row['tour']) for row in evaluator.evaluate()]

        assert run() == run()

    def test_failed_run_is_recorded(self, instance):
        def broken_stop():
            raise RuntimeError("boom")

        evaluator = MultiStartEvaluation(instance, seeds=[1, 2], stop_factory=broken_stop,
                                         output_csv_path=None, show_progress=False)
        results = evaluator.evaluate()
        assert [row['best_cost'] for row in results] == ['error', 'error']

    def test_failure_is_logged_under_module_logger(self, instance, caplog):
        def broken_stop():
            raise RuntimeError("boom")

        evaluator = MultiStartEvaluation(instance, seeds=[7], stop_factory=broken_stop,
                                         output_csv_path=None, show_progress=False)
        with caplog.at_level(logging.ERROR, logger="tsp.evaluation_tsp"):
            evaluator.evaluate()
        failures = [record for record in caplog.records if record.levelno == logging.ERROR]
        assert len(failures) == 1
        assert failures[0].name == "tsp.evaluation_tsp"
        assert "seed 7" in failures[0].getMessage()

    def test_rejects_empty_seeds(self, instance):
        with pytest.raises(ValueError):
            MultiStartEvaluation(instance, seeds=[], stop_factory=lambda: MaxEpochs(1))

    def test_rejects_duplicate_seeds(self, instance):
        with pytest.raises(ValueError):
            MultiStartEvaluation(instance, seeds=[1, 1], stop_factory=lambda: MaxEpochs(1))

    @pytest.mark.parametrize("option", ['seed', 'rng', 'reporter'])
    def test_rejects_per_run_options(self, instance, option):
        with pytest.raises(ValueError):
            MultiStartEvaluation(instance, seeds=[1], stop_factory=lambda: MaxEpochs(1), **{option: None})
