"""Tests for graph construction."""

import random

import pytest

from constellation.config import GraphConfig
from constellation.graph_builder import (
    build_graph,
    count_components,
    find_candidate_edges,
    node_size,
    select_edges,
    shared_genres,
)
from constellation.models import DEFAULT_NODE_COLOR, Artist


def _artist(artist_id, *genres, rank=0):
    return Artist(id=artist_id, name=f"Artist {artist_id}", genres=genres, rank=rank)


def _degrees(graph):
    return {node_id: graph.degree(node_id) for node_id in graph.node_ids}


class TestNodeSize:
    """Tests for node_size function."""

    def test_top_artist_gets_max_size(self):
        """Test that rank 0 gets the maximum size."""
        assert node_size(0, 10) == pytest.approx(15.0)

    def test_size_decreases_with_rank(self):
        """Test that sizes shrink monotonically down the ranking."""
        sizes = [node_size(i, 20) for i in range(20)]
        assert sizes == sorted(sizes, reverse=True)
        assert min(sizes) >= 2.0


class TestSharedGenres:
    """Tests for shared_genres function."""

    def test_keeps_first_artist_order(self):
        """Test that shared genres follow the first artist's genre order."""
        first = _artist("a", "pop", "rock", "jazz")
        second = _artist("b", "jazz", "pop")
        assert shared_genres(first, second) == ("pop", "jazz")

    def test_no_overlap(self):
        """Test that disjoint genre lists share nothing."""
        assert shared_genres(_artist("a", "rock"), _artist("b", "jazz")) == ()


class TestFindCandidateEdges:
    """Tests for find_candidate_edges function."""

    def test_sorted_by_weight(self):
        """Test that candidates come strongest first."""
        artists = [
            _artist("a", "x"),
            _artist("b", "x", "y"),
            _artist("c", "x", "y", "z"),
        ]
        candidates = find_candidate_edges(artists)

        weights = [edge.weight for _i, _j, edge in candidates]
        assert weights == [2.0, 1.0, 1.0]
        assert candidates[0][2].key == ("b", "c")

    def test_equal_weights_keep_pair_order(self):
        """Test that ties keep enumeration order."""
        artists = [_artist("a", "x"), _artist("b", "x"), _artist("c", "x")]
        candidates = find_candidate_edges(artists)
        assert [(i, j) for i, j, _edge in candidates] == [(0, 1), (0, 2), (1, 2)]

    def test_custom_similarity(self):
        """Test that a similarity function replaces genre counting."""
        artists = [_artist("a"), _artist("b"), _artist("c")]
        scores = {("a", "b"): 0.5, ("a", "c"): 0.0, ("b", "c"): -1.0}

        candidates = find_candidate_edges(
            artists, lambda first, second: scores[(first.id, second.id)]
        )

        assert len(candidates) == 1
        assert candidates[0][2].weight == 0.5
        assert candidates[0][2].shared_attributes == ()


class TestSelectEdges:
    """Tests for select_edges function."""

    def test_bridges_before_densifying(self):
        """Test that a weaker bridge wins over a stronger redundant edge."""
        artists = [
            _artist("a", "x", "y"),
            _artist("b", "x", "y"),
            _artist("c", "x", "y"),
            _artist("d", "x"),
        ]
        candidates = find_candidate_edges(artists)

        edges, degrees = select_edges(4, candidates, max_degree=2)

        keys = {edge.key for edge in edges}
        assert any("d" in key for key in keys)
        assert max(degrees) <= 2


class TestBuildGraph:
    """Tests for build_graph function."""

    def test_drops_artist_without_shared_genres(self):
        """Test that an artist sharing nothing is dropped."""
        artists = [
            _artist("A", "rock"),
            _artist("B", "rock", "pop"),
            _artist("C", "pop"),
            _artist("D", "jazz"),
        ]

        graph = build_graph(artists)

        assert sorted(graph.node_ids) == ["A", "B", "C"]
        assert {edge.key for edge in graph.edges} == {("A", "B"), ("B", "C")}
        assert count_components(graph) == 1

    def test_degree_cap_can_disconnect(self):
        """Test that a cap of one keeps only the strongest bridge."""
        artists = [
            _artist("A", "x", "y", "z"),
            _artist("B", "x", "y", "z"),
            _artist("C", "x", "y"),
        ]

        graph = build_graph(artists, config=GraphConfig(max_degree=1))

        assert sorted(graph.node_ids) == ["A", "B"]
        assert [edge.key for edge in graph.edges] == [("A", "B")]

    def test_fewer_than_two_artists(self):
        """Test that empty and single-artist input give an empty graph."""
        assert build_graph([]).is_empty
        assert build_graph([_artist("A", "rock")]).is_empty

    def test_duplicate_ids_ignored(self):
        """Test that repeated artist ids keep only the first entry."""
        artists = [_artist("A", "rock"), _artist("A", "pop"), _artist("B", "rock")]

        graph = build_graph(artists)

        assert graph.node_ids == ["A", "B"]
        assert graph.node_map()["A"].genres == ("rock",)

    def test_degree_bounds_and_connectivity(self):
        """Test degree cap, minimum degree and single component on random input."""
        rng = random.Random(7)
        pool = ["house", "techno", "ambient", "jazz", "soul", "punk", "folk"]
        artists = [
            _artist(f"a{i}", "music", *rng.sample(pool, 2), rank=i) for i in range(40)
        ]

        graph = build_graph(artists, config=GraphConfig(max_degree=3))

        degrees = _degrees(graph)
        assert len(graph.nodes) == 40
        assert all(1 <= degree <= 3 for degree in degrees.values())
        assert count_components(graph) == 1

    def test_no_duplicate_or_self_edges(self):
        """Test that every edge is unique and joins two different nodes."""
        artists = [_artist(f"a{i}", "x", "y") for i in range(10)]

        graph = build_graph(artists)

        keys = [edge.key for edge in graph.edges]
        assert len(keys) == len(set(keys))
        assert all(edge.source != edge.target for edge in graph.edges)

    def test_deterministic(self):
        """Test that building twice from the same input gives the same graph."""
        artists = [_artist(f"a{i}", "x", f"g{i % 3}") for i in range(12)]

        first = build_graph(artists)
        second = build_graph(artists)

        assert first.edges == second.edges
        assert first.node_ids == second.node_ids

    def test_nodes_are_colored(self):
        """Test that clustering assigns every node a color."""
        artists = [_artist(f"a{i}", "house") for i in range(4)]
        artists.append(_artist("loner", "jazz", "house"))

        graph = build_graph(artists)

        assert graph.clusters[0].id == "house"
        assert all(node.color and node.color != DEFAULT_NODE_COLOR for node in graph.nodes)
        assert graph.node_map()["loner"].primary_genre == "house"


class TestCountComponents:
    """Tests for count_components function."""

    def test_empty_graph(self):
        """Test that an empty graph has no components."""
        assert count_components(build_graph([])) == 0
