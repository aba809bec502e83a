"""Tests for genre cluster labeling."""

import math

from constellation.cluster_labeler import (
    colorize_nodes,
    format_genre_name,
    label_clusters,
    mixed_genre_name,
    spatial_genre_labels,
)
from constellation.models import CLUSTER_PALETTE, DEFAULT_NODE_COLOR, UNKNOWN_GENRE, Node


def _node(node_id, *genres, size=5.0):
    return Node(id=node_id, name=node_id.title(), genres=genres, rank=0, size=size)


class TestLabelClusters:
    """Tests for label_clusters function."""

    def test_keeps_genres_with_enough_members(self):
        """Test that only genres on at least min_members nodes become clusters."""
        nodes = [
            _node("a", "rock", "pop"),
            _node("b", "rock"),
            _node("c", "rock", "pop"),
            _node("d", "pop", "jazz"),
        ]

        clusters = label_clusters(nodes, min_members=3)

        assert [c.id for c in clusters] == ["rock", "pop"]
        assert [c.color_index for c in clusters] == [0, 1]
        assert clusters[0].member_node_ids == ("a", "b", "c")
        assert clusters[1].node_count == 3

    def test_ties_keep_first_seen_order(self):
        """Test that equally common genres keep their first appearance order."""
        nodes = [_node(f"n{i}", "techno", "house") for i in range(3)]
        clusters = label_clusters(nodes)
        assert [c.id for c in clusters] == ["techno", "house"]

    def test_max_clusters(self):
        """Test that the cluster count is capped."""
        nodes = [_node(f"n{i}", "a", "b", "c") for i in range(3)]
        assert len(label_clusters(nodes, max_clusters=2)) == 2

    def test_display_name(self):
        """Test that cluster names are title-cased per word."""
        nodes = [_node(f"n{i}", "deep house") for i in range(3)]
        assert label_clusters(nodes)[0].name == "Deep House"


class TestColorizeNodes:
    """Tests for colorize_nodes function."""

    def test_first_matching_genre_wins(self):
        """Test that a node takes the color of its first clustered genre."""
        nodes = [_node(f"n{i}", "rock") for i in range(3)]
        nodes.append(_node("mixed", "jazz", "rock"))
        clusters = label_clusters(nodes)

        colorize_nodes(nodes, clusters)

        assert nodes[-1].color == CLUSTER_PALETTE[0]
        assert nodes[-1].primary_genre == "rock"

    def test_unclustered_nodes_get_default(self):
        """Test fallback color and primary genre for unclustered nodes."""
        nodes = [_node("jazzy", "jazz"), _node("untagged")]

        colorize_nodes(nodes, [])

        assert nodes[0].color == DEFAULT_NODE_COLOR
        assert nodes[0].primary_genre == "jazz"
        assert nodes[1].primary_genre == UNKNOWN_GENRE


class TestMixedGenreName:
    """Tests for mixed_genre_name function."""

    def test_modifier_and_core(self):
        """Test that a modifier and a core genre are combined."""
        assert mixed_genre_name(["indie rock", "dream pop"]) == "Indie Rock"

    def test_single_genre(self):
        """Test that a single genre is just formatted."""
        assert mixed_genre_name(["deep house"]) == "Deep House"

    def test_no_genres(self):
        """Test the empty fallback."""
        assert mixed_genre_name([]) == "Unknown"

    def test_format_genre_name(self):
        """Test word capitalization."""
        assert format_genre_name("hip hop") == "Hip Hop"


class TestSpatialGenreLabels:
    """Tests for spatial_genre_labels function."""

    def test_bins_y_axis_from_its_own_minimum(self):
        """Test that the vertical grid origin is the smallest y, not the smallest x."""
        nodes = [_node(f"n{i}", "rock", size=float(i)) for i in range(4)]
        positions = {
            "n0": (0.0, 100.0),
            "n1": (5.0, 140.0),
            "n2": (10.0, 160.0),
            "n3": (15.0, 200.0),
        }

        labels = spatial_genre_labels(nodes, positions)

        assert len(labels) == 1
        assert labels[0].node_count == 4
        assert labels[0].anchor_node_id == "n3"
        assert labels[0].name == "Rock"

    def test_sparse_cells_are_not_labeled(self):
        """Test that cells with fewer than three nodes get no label."""
        nodes = [_node("a", "rock"), _node("b", "rock")]
        positions = {"a": (0.0, 0.0), "b": (1.0, 1.0)}
        assert spatial_genre_labels(nodes, positions) == []

    def test_ignores_unplaced_nodes(self):
        """Test that missing or non-finite positions are skipped."""
        nodes = [_node(f"n{i}", "rock") for i in range(3)]
        positions = {"n0": (0.0, 0.0), "n1": (math.nan, 0.0)}
        assert spatial_genre_labels(nodes, positions) == []
        assert spatial_genre_labels(nodes, {}) == []
