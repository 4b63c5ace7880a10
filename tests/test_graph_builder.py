"""Tests for transition graph construction.

Tests: GraphBuilder, direction_edges, TransitionGraph, GraphLifecycle
Focus: Congruence checks, 16-neighbour topology, barrier exclusion,
directional slope, degenerate conductance and build lifecycle.
"""

import math
import warnings

import numpy as np
import pytest
from statemachine.exceptions import TransitionNotAllowed

from conftest import ORIGIN_X, ORIGIN_Y, make_grid, make_layers
from stride.constants import SpeedModelConfig
from stride.core.conductance import damping, lorentzian, speed
from stride.exceptions import ConductanceDegenerateError, GraphNotBuiltError, InputMismatchError
from stride.generators.build_state import GraphLifecycle
from stride.generators.graph_builder import GraphBuilder, build_transition_graph, direction_edges
from stride.model.cell import Cell


def edge_cells(graph) -> set[tuple[Cell, Cell]]:
    coo = graph.travel_time.tocoo()
    return {(graph.cell_of(int(i)), graph.cell_of(int(j))) for i, j in zip(coo.row, coo.col)}


# =============================================================================
# CONGRUENCE
# =============================================================================


class TestCongruence:
    """GraphBuilder - rejects layers that are not spatially congruent."""

    def test_congruent_layers_accepted(self, flat_3x3_layers) -> None:
        builder = GraphBuilder(**flat_3x3_layers)
        assert not builder.is_built

    def test_crs_mismatch(self, flat_3x3_layers) -> None:
        layers = dict(flat_3x3_layers)
        layers["density"] = make_grid(np.zeros((3, 3)), crs="EPSG:32618")
        with pytest.raises(InputMismatchError) as exc_info:
            GraphBuilder(**layers)
        assert exc_info.value.mismatches == ("crs",)

    def test_shape_mismatch(self, flat_3x3_layers) -> None:
        layers = dict(flat_3x3_layers)
        layers["roughness"] = make_grid(np.zeros((4, 3)))
        with pytest.raises(InputMismatchError) as exc_info:
            GraphBuilder(**layers)
        assert "nrow" in exc_info.value.mismatches
        assert "extent" in exc_info.value.mismatches
        assert "ncol" not in exc_info.value.mismatches

    def test_resolution_mismatch(self, flat_3x3_layers) -> None:
        layers = dict(flat_3x3_layers)
        layers["cliff"] = make_grid(np.ones((3, 3)), resolution=20.0)
        with pytest.raises(InputMismatchError) as exc_info:
            GraphBuilder(**layers)
        assert "resolution" in exc_info.value.mismatches

    def test_origin_mismatch(self, flat_3x3_layers) -> None:
        layers = dict(flat_3x3_layers)
        layers["water"] = make_grid(np.ones((3, 3)), origin=(ORIGIN_X + 5.0, ORIGIN_Y))
        with pytest.raises(InputMismatchError) as exc_info:
            GraphBuilder(**layers)
        assert "origin" in exc_info.value.mismatches
        assert "crs" not in exc_info.value.mismatches

    def test_mismatch_is_a_value_error(self, flat_3x3_layers) -> None:
        layers = dict(flat_3x3_layers)
        layers["density"] = make_grid(np.zeros((3, 3)), crs="EPSG:32618")
        with pytest.raises(ValueError, match="not spatially congruent"):
            build_transition_graph(**layers)

    def test_invalid_worker_count(self, flat_3x3_layers) -> None:
        with pytest.raises(ValueError, match="workers"):
            GraphBuilder(**flat_3x3_layers, workers=0)


# =============================================================================
# TOPOLOGY
# =============================================================================


class TestTopology:
    """16-neighbour connectivity on small grids."""

    def test_flat_3x3_edge_count(self, flat_3x3_layers) -> None:
        """40 king edges + 16 knight edges; the centre has no knight neighbours."""
        graph = GraphBuilder(**flat_3x3_layers).build()
        assert graph.n_cells == 9
        assert graph.n_edges == 56
        assert graph.n_degenerate == 0

    def test_orthogonal_edge(self, flat_3x3_layers) -> None:
        graph = GraphBuilder(**flat_3x3_layers).build()
        edge = graph.edge((0, 0), (0, 1))

        assert edge is not None
        assert edge.distance == pytest.approx(10.0)
        assert edge.slope_deg == pytest.approx(0.0)
        assert edge.conductance == pytest.approx(lorentzian(0.0))
        assert edge.travel_time == pytest.approx(10.0 / lorentzian(0.0))
        assert graph.travel_time[0, 1] == pytest.approx(edge.travel_time)

    def test_diagonal_and_knight_distances(self, flat_3x3_layers) -> None:
        graph = GraphBuilder(**flat_3x3_layers).build()
        assert graph.edge((0, 0), (1, 1)).distance == pytest.approx(10.0 * math.sqrt(2))
        assert graph.edge((0, 0), (2, 1)).distance == pytest.approx(10.0 * math.sqrt(5))
        assert graph.edge((0, 0), (1, 2)).distance == pytest.approx(10.0 * math.sqrt(5))

    def test_non_neighbours_have_no_edge(self, flat_3x3_layers) -> None:
        graph = GraphBuilder(**flat_3x3_layers).build()
        assert graph.edge((0, 0), (2, 2)) is None
        assert graph.edge((0, 0), (0, 2)) is None
        assert graph.edge((1, 1), (1, 1)) is None

    def test_centre_neighbours(self, flat_3x3_layers) -> None:
        graph = GraphBuilder(**flat_3x3_layers).build()
        targets = {e.target for e in graph.neighbors((1, 1))}
        assert len(targets) == 8
        assert Cell(1, 1) not in targets

    def test_interior_cell_has_16_neighbours(self, flat_5x5_layers) -> None:
        graph = GraphBuilder(**flat_5x5_layers).build()
        edges = graph.neighbors(Cell(2, 2))
        assert len(edges) == 16
        assert sorted({round(e.distance / 10.0, 6) for e in edges}) == [1.0, round(math.sqrt(2), 6), round(math.sqrt(5), 6)]

    def test_uniform_damping(self, flat_5x5_layers) -> None:
        graph = GraphBuilder(**flat_5x5_layers).build()
        edge = graph.edge((0, 0), (0, 1))
        assert edge.conductance == pytest.approx(speed(0.0, 0.2, 0.1))
        assert edge.penalty == pytest.approx(damping(0.2, 0.1))
        assert edge.conductance * edge.penalty == pytest.approx(lorentzian(0.0))

    def test_penalty_uses_endpoint_means(self) -> None:
        density = np.array([[0.0, 0.4]])
        roughness = np.array([[0.2, 0.0]])
        graph = GraphBuilder(**make_layers(np.zeros((1, 2)), density=density, roughness=roughness)).build()

        forward = graph.edge((0, 0), (0, 1))
        backward = graph.edge((0, 1), (0, 0))
        assert forward.penalty == pytest.approx(SpeedModelConfig.D * 0.2 + SpeedModelConfig.E * 0.1 + 1)
        assert backward.penalty == pytest.approx(forward.penalty)

    def test_undamped_edge_has_unit_penalty(self, flat_3x3_layers) -> None:
        graph = GraphBuilder(**flat_3x3_layers).build()
        assert graph.edge((1, 1), (2, 2)).penalty == pytest.approx(1.0)

    def test_outside_grid_raises(self, flat_3x3_layers) -> None:
        graph = GraphBuilder(**flat_3x3_layers).build()
        with pytest.raises(ValueError, match="outside"):
            graph.edge((0, 0), (3, 0))
        with pytest.raises(ValueError, match="outside"):
            graph.neighbors((-1, 0))

    def test_edge_matrices_share_sparsity(self, flat_5x5_layers) -> None:
        graph = GraphBuilder(**flat_5x5_layers).build()
        assert graph.travel_time.nnz == graph.conductance.nnz
        assert edge_cells(graph) == {
            (graph.cell_of(int(i)), graph.cell_of(int(j))) for i, j in zip(*graph.conductance.nonzero())
        }


# =============================================================================
# SLOPE DIRECTION
# =============================================================================


class TestDirectionalSlope:
    """Slope is target minus source, so uphill and downhill differ."""

    def test_asymmetric_travel_time(self) -> None:
        graph = GraphBuilder(**make_layers(elevation=np.array([[0.0, 5.0]]))).build()
        up = graph.edge((0, 0), (0, 1))
        down = graph.edge((0, 1), (0, 0))

        expected = math.degrees(math.atan(5.0 / 10.0))
        assert up.slope_deg == pytest.approx(expected)
        assert down.slope_deg == pytest.approx(-expected)
        assert down.conductance > up.conductance
        assert graph.travel_time[1, 0] < graph.travel_time[0, 1]

    def test_direction_edges_single_offset(self) -> None:
        elevation = np.array([[0.0, 5.0, 10.0]])
        arrays = {name: grid.values.astype(np.float64) for name, grid in make_layers(elevation).items()}
        part = direction_edges(arrays, resolution=10.0, offset=(0, 1))

        np.testing.assert_array_equal(part.sources, [0, 1])
        np.testing.assert_array_equal(part.targets, [1, 2])
        assert part.n_candidates == 2
        np.testing.assert_allclose(part.travel_time, 10.0 / part.conductance)

    def test_offset_larger_than_grid(self) -> None:
        arrays = {name: grid.values.astype(np.float64) for name, grid in make_layers(np.zeros((1, 3))).items()}
        part = direction_edges(arrays, resolution=10.0, offset=(2, 1))
        assert part.n_candidates == 0
        assert part.sources.size == 0


# =============================================================================
# BARRIERS AND MISSING DATA
# =============================================================================


class TestBarriers:
    """Edges touching a barrier cell are absent."""

    @pytest.mark.parametrize("barrier", ["cliff", "water"])
    def test_barrier_cell_is_isolated(self, barrier: str) -> None:
        mask = np.ones((5, 5))
        mask[2, 2] = 0
        layers = make_layers(elevation=np.zeros((5, 5)), **{barrier: mask})
        graph = GraphBuilder(**layers).build()

        centre = Cell(2, 2)
        assert all(centre not in pair for pair in edge_cells(graph))
        assert graph.neighbors(centre) == []
        # 5x5 flat grid has 144 king + 96 knight edges; the centre carries 32 of them
        assert graph.n_edges == 240 - 32

    def test_barrier_does_not_count_as_degenerate(self) -> None:
        cliff = np.ones((3, 3))
        cliff[1, 1] = 0
        density = np.zeros((3, 3))
        density[1, 1] = -1.0
        with warnings.catch_warnings():
            warnings.simplefilter("error", ConductanceDegenerateError)
            graph = GraphBuilder(**make_layers(np.zeros((3, 3)), density=density, cliff=cliff)).build()
        assert graph.n_degenerate == 0

    def test_nan_elevation_has_no_edges(self) -> None:
        elevation = np.zeros((3, 3))
        elevation[1, 1] = np.nan
        with warnings.catch_warnings():
            warnings.simplefilter("error", ConductanceDegenerateError)
            graph = GraphBuilder(**make_layers(elevation)).build()

        assert graph.n_edges == 40
        assert graph.n_degenerate == 0
        assert graph.neighbors((1, 1)) == []

    def test_nan_barrier_is_impassable(self) -> None:
        water = np.ones((3, 3))
        water[0, 0] = np.nan
        graph = GraphBuilder(**make_layers(np.zeros((3, 3)), water=water)).build()
        assert graph.neighbors((0, 0)) == []


class TestDegenerateConductance:
    """Non-positive modelled speed outside barriers."""

    def test_negative_density_warns_and_drops_edges(self) -> None:
        density = np.zeros((3, 3))
        density[1, 1] = -1.0
        builder = GraphBuilder(**make_layers(np.zeros((3, 3)), density=density))

        with pytest.warns(ConductanceDegenerateError, match="16 of 56 edges"):
            graph = builder.build()

        assert graph.n_degenerate == 16
        assert graph.n_edges == 40
        assert graph.neighbors((1, 1)) == []

    def test_degenerate_warning_is_logged(self, caplog) -> None:
        density = np.zeros((3, 3))
        density[1, 1] = -1.0
        with pytest.warns(ConductanceDegenerateError):
            GraphBuilder(**make_layers(np.zeros((3, 3)), density=density)).build()
        assert "non-positive speed" in caplog.text


# =============================================================================
# LIFECYCLE
# =============================================================================


class TestLifecycle:
    """Unbuilt -> built -> invalidated on layer replacement."""

    def test_graph_before_build_raises(self, flat_3x3_layers) -> None:
        builder = GraphBuilder(**flat_3x3_layers)
        with pytest.raises(GraphNotBuiltError):
            _ = builder.graph

    def test_build_transitions_to_built(self, flat_3x3_layers) -> None:
        builder = GraphBuilder(**flat_3x3_layers)
        assert builder.lifecycle.current_state == builder.lifecycle.unbuilt

        graph = builder.build()
        assert builder.is_built
        assert builder.lifecycle.current_state == builder.lifecycle.built
        assert builder.graph is graph

    def test_build_is_cached(self, flat_3x3_layers) -> None:
        builder = GraphBuilder(**flat_3x3_layers)
        assert builder.build() is builder.build()

    def test_invalidate_when_unbuilt_not_allowed(self) -> None:
        lifecycle = GraphLifecycle()
        with pytest.raises(TransitionNotAllowed):
            lifecycle.invalidate()

    def test_materialize_twice_not_allowed(self) -> None:
        lifecycle = GraphLifecycle()
        lifecycle.materialize()
        with pytest.raises(TransitionNotAllowed):
            lifecycle.materialize()

    def test_replace_layer_invalidates(self, flat_3x3_layers) -> None:
        builder = GraphBuilder(**flat_3x3_layers)
        first = builder.build()

        builder.replace_layers(density=make_grid(np.full((3, 3), 0.5), name="density"))
        assert not builder.is_built
        with pytest.raises(GraphNotBuiltError):
            _ = builder.graph

        second = builder.build()
        assert second is not first
        assert second.travel_time[0, 1] > first.travel_time[0, 1]

    def test_replace_unknown_layer(self, flat_3x3_layers) -> None:
        builder = GraphBuilder(**flat_3x3_layers)
        with pytest.raises(ValueError, match="Unknown layer"):
            builder.replace_layers(slope=make_grid(np.zeros((3, 3))))

    def test_replace_with_mismatched_layer_keeps_graph(self, flat_3x3_layers) -> None:
        builder = GraphBuilder(**flat_3x3_layers)
        graph = builder.build()

        with pytest.raises(InputMismatchError):
            builder.replace_layers(water=make_grid(np.ones((4, 4))))
        assert builder.is_built
        assert builder.graph is graph

    def test_replace_before_build(self, flat_3x3_layers) -> None:
        builder = GraphBuilder(**flat_3x3_layers)
        builder.replace_layers(roughness=make_grid(np.full((3, 3), 0.1)))
        assert not builder.is_built
        assert builder.build().n_edges == 56


# =============================================================================
# PARALLEL BUILD
# =============================================================================


class TestParallelBuild:
    """Thread-pooled build produces the same graph as the sequential one."""

    def test_workers_match_sequential(self) -> None:
        rng = np.random.default_rng(42)
        elevation = rng.uniform(0.0, 8.0, size=(12, 9))
        density = rng.uniform(0.0, 1.0, size=(12, 9))
        roughness = rng.uniform(0.0, 0.5, size=(12, 9))
        water = np.ones((12, 9))
        water[4:6, 3:7] = 0
        layers = make_layers(elevation, density=density, roughness=roughness, water=water)

        sequential = GraphBuilder(**layers, workers=1).build()
        threaded = GraphBuilder(**layers, workers=4).build()

        assert sequential.n_edges == threaded.n_edges
        assert abs(sequential.travel_time - threaded.travel_time).max() == pytest.approx(0.0)
        assert abs(sequential.conductance - threaded.conductance).max() == pytest.approx(0.0)
