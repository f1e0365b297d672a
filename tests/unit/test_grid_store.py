"""Unit tests for GridStore validation and copy-on-write sharing."""

import gc
import threading

import numpy as np
import pytest

from corrtrack import GridStore, InvalidPhaseError, OutOfBoundsError
from corrtrack import grid as grid_module


@pytest.mark.unit
class TestElementAccess:
    """Bounds-checked reads and writes"""

    def test_get_returns_plain_labels(self):
        store = GridStore(np.array([[0, 1], [1, 0]]))
        value = store.get((0, 1))
        assert value == 1
        assert type(value) is int

    def test_set_returns_previous_value(self):
        store = GridStore(np.array([[0, 1], [1, 0]]))
        assert store.set((1, 1), 1) == 0
        assert store.get((1, 1)) == 1

    def test_one_dimensional_grid_accepts_plain_integers(self):
        store = GridStore([0, 1, 1])
        assert store.get(2) == 1

    @pytest.mark.parametrize("idx", [(2, 0), (0, -1), (0,), (0, 0, 0), (0.0, 1), (True, 0)])
    def test_out_of_bounds(self, idx):
        store = GridStore(np.zeros((2, 3), dtype=int))
        with pytest.raises(OutOfBoundsError):
            store.get(idx)

    def test_out_of_bounds_is_an_index_error(self):
        store = GridStore(np.zeros((2, 3), dtype=int))
        with pytest.raises(IndexError):
            store.set((5, 5), 0)

    def test_invalid_phase_leaves_grid_unchanged(self):
        store = GridStore(np.array([0, 1, 0]))
        with pytest.raises(InvalidPhaseError):
            store.set(1, 2)
        assert store.get(1) == 1

    def test_declared_phases_may_exceed_present_labels(self):
        store = GridStore(np.zeros(4, dtype=int), phases=[0, 1, 2])
        store.set(0, 2)
        assert store.get(0) == 2

    def test_grid_with_undeclared_labels_is_rejected(self):
        with pytest.raises(InvalidPhaseError):
            GridStore(np.array([0, 1, 3]), phases=[0, 1])

    def test_store_copies_its_input(self):
        source = np.zeros(3, dtype=int)
        store = GridStore(source, phases=[0, 1])
        store.set(0, 1)
        assert source[0] == 0


@pytest.mark.unit
class TestCopyOnWrite:
    """Derived stores share the base array until one side writes"""

    def test_derived_store_sees_its_change_only(self):
        base = GridStore(np.array([0, 0, 0, 0]), phases=[0, 1])
        derived = base.derive((2,), 1)
        assert derived.get(2) == 1
        assert base.get(2) == 0
        assert base.is_shared and derived.is_shared

    def test_source_write_does_not_leak_into_derived(self):
        base = GridStore(np.array([0, 0, 0, 0]), phases=[0, 1])
        derived = base.derive((2,), 1)
        base.set(0, 1)
        assert derived.get(0) == 0
        assert not base.is_shared

    def test_derived_write_does_not_leak_into_source(self):
        base = GridStore(np.array([0, 0, 0, 0]), phases=[0, 1])
        derived = base.derive((2,), 1)
        derived.set(3, 1)
        assert base.to_numpy().tolist() == [0, 0, 0, 0]
        assert derived.to_numpy().tolist() == [0, 0, 1, 1]

    def test_sharing_ends_when_the_other_store_is_collected(self):
        base = GridStore(np.array([0, 0, 0]), phases=[0, 1])
        derived = base.derive((0,), 1)
        del derived
        gc.collect()
        assert not base.is_shared

    def test_sole_owner_folds_overlay_before_writing(self):
        base = GridStore(np.array([0, 0, 0]), phases=[0, 1])
        derived = base.derive((0,), 1)
        del base
        gc.collect()
        derived.set(1, 1)
        assert derived.to_numpy().tolist() == [1, 1, 0]

    def test_long_derivation_chains_materialize(self):
        store = GridStore(np.zeros(grid_module.MAX_OVERLAY + 8, dtype=int), phases=[0, 1])
        chain = [store]
        for i in range(grid_module.MAX_OVERLAY + 4):
            chain.append(chain[-1].derive((i,), 1))
        last = chain[-1]
        assert len(last._overlay) <= grid_module.MAX_OVERLAY
        assert last.to_numpy()[: grid_module.MAX_OVERLAY + 4].all()
        assert not store.to_numpy().any()

    def test_concurrent_derivations_balance_the_reference_count(self):
        base = GridStore(np.zeros(16, dtype=int), phases=[0, 1])

        def churn(offset):
            for i in range(200):
                derived = base.derive(((offset + i) % 16,), 1)
                del derived

        threads = [threading.Thread(target=churn, args=(k,)) for k in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        gc.collect()
        assert base._base.refs == 1
        assert not base.is_shared
