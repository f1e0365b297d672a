"""Array-like behaviour, maintenance helpers and thread safety of the tracker."""

import threading

import numpy as np
import pytest

from corrtrack import CorrelationTracker, InvalidPhaseError, TrackedData, directional


@pytest.mark.integration
class TestArrayInterface:
    def test_shape_and_conversion(self, binary_grid):
        tracker = CorrelationTracker(binary_grid)
        assert tracker.shape == (12, 10)
        assert tracker.ndim == 2
        assert tracker.size == 120
        assert len(tracker) == 12
        np.testing.assert_array_equal(np.asarray(tracker), binary_grid)
        assert np.asarray(tracker, dtype=float).dtype == np.float64

    def test_array_conversion_always_copies(self, binary_grid):
        tracker = CorrelationTracker(binary_grid)
        np.asarray(tracker)[0, 0] = 7
        np.array(tracker, copy=True)[0, 1] = 7
        assert tracker[0, 0] == binary_grid[0, 0]
        assert tracker[0, 1] == binary_grid[0, 1]

    def test_to_numpy_is_a_copy(self, binary_grid):
        tracker = CorrelationTracker(binary_grid)
        tracker.to_numpy()[0, 0] = 7
        assert tracker[0, 0] == binary_grid[0, 0]

    def test_construction_copies_the_system(self, binary_grid):
        original = binary_grid.copy()
        tracker = CorrelationTracker(binary_grid)
        tracker[0, 0] = 1 - tracker[0, 0]
        np.testing.assert_array_equal(binary_grid, original)

    def test_phases_default_to_present_and_tracked_labels(self):
        tracker = CorrelationTracker(np.zeros((4, 4), dtype=int))
        assert tracker.phases == [0, 1]
        tracker[0, 0] = 1

    def test_boolean_grid_accepts_both_truth_values(self):
        tracker = CorrelationTracker(np.zeros((6, 6), dtype=bool), [("l2", False)])
        tracker[2, 3] = True
        assert tracker[2, 3] is True
        np.testing.assert_array_equal(
            tracker.read_descriptor("l2", False, "x"),
            directional.l2(tracker.to_numpy(), False)["x"],
        )

    def test_labels_absent_from_an_integer_grid_need_declaring(self):
        with pytest.raises(InvalidPhaseError):
            CorrelationTracker(np.zeros((4, 4), dtype=int), [])[0, 0] = 1
        tracker = CorrelationTracker(np.zeros((4, 4), dtype=int), [], phases=[0, 1])
        tracker[0, 0] = 1
        assert tracker[0, 0] == 1

    def test_declared_phases(self):
        tracker = CorrelationTracker(np.zeros((4, 4), dtype=int), [("s2", 1)], phases=[0, 1])
        with pytest.raises(InvalidPhaseError):
            tracker[0, 0] = 2

    def test_repr(self, binary_grid):
        text = repr(CorrelationTracker(binary_grid, [("s2", 1)], directions=["x", (1, 1)]))
        assert "CorrelationTracker(shape=(12, 10)" in text
        assert "(1,1)" in text


@pytest.mark.integration
class TestMaintenance:
    def test_recalculate_keeps_consistent_buffers(self, binary_grid):
        tracker = CorrelationTracker(binary_grid)
        token = tracker.update((3, 3), 1 - tracker[3, 3])
        before = tracker._buffers.counts.copy()
        tracker.recalculate()
        np.testing.assert_array_equal(tracker._buffers.counts, before)
        tracker.rollback(token)

    def test_correlation_covers_all_directions(self, binary_grid):
        tracker = CorrelationTracker(binary_grid, directions=["x", "y", "xy"])
        data = tracker.correlation("l2", 0)
        assert data.directions == ["x", "y", "xy"]
        np.testing.assert_array_equal(data["xy"], tracker.read_descriptor("l2", 0, (1, 1)))

    def test_secondary_phase_is_inert(self, three_phase_grid):
        values = []
        for secondary in (None, 0, 2):
            tracking = [TrackedData("surfsurf", 1, secondary), TrackedData("surfvoid", 1, secondary)]
            tracker = CorrelationTracker(three_phase_grid, tracking)
            tracker[4, 4] = (tracker[4, 4] + 1) % 3
            values.append(tracker._buffers.counts.copy())
        np.testing.assert_array_equal(values[0], values[1])
        np.testing.assert_array_equal(values[0], values[2])

    def test_surface_functions_through_directional(self, three_phase_grid):
        tracker = CorrelationTracker(three_phase_grid, [("surfvoid", 2)], periodic=True)
        tracker[0, 0] = 2
        system = tracker.to_numpy()
        np.testing.assert_array_equal(
            directional.surfvoid(tracker, 2)["y"],
            directional.surfvoid(system, 2, periodic=True)["y"],
        )


@pytest.mark.integration
class TestThreadSafety:
    def test_concurrent_writers_and_soft_updates(self, rng):
        system = rng.integers(0, 2, (40, 40))
        tracker = CorrelationTracker(system, [("s2", 1), ("l2", 1), ("surfsurf", 1)])
        coords = [tuple(int(c) for c in rng.integers(0, 40, 2)) for _ in range(400)]
        errors = []

        def writer(chunk):
            try:
                for idx in chunk:
                    tracker[idx] = 1 - tracker[idx]
                    tracker.soft_update(idx, 1 - tracker[idx])
            except Exception as e:  # pragma: no cover - reported below
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(coords[i::4],)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        fresh = CorrelationTracker(tracker.to_numpy(), tracker.tracked_data(), phases=[0, 1])
        np.testing.assert_array_equal(tracker._buffers.counts, fresh._buffers.counts)
