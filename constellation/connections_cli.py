"""
Command-line entry points: fetch artists, build the constellation graph and
play Connections in the terminal.
"""

import argparse
import json
import logging
import random
import sys
from collections.abc import Callable
from dataclasses import asdict, replace
from pathlib import Path

from constellation.adjacency import AdjacencyIndex
from constellation.artist_cache import ArtistCache
from constellation.config import (
    ConfigError,
    ConnectionsConfig,
    load_config,
    validate_config,
)
from constellation.data_loader import (
    graph_to_dict,
    load_artists,
    load_similar_artists_map,
    save_graph,
)
from constellation.game_session import GameSession
from constellation.graph_builder import build_graph, count_components
from constellation.lastfm_fetcher import (
    LASTFM_API_KEY,
    FetchProgress,
    LastFmAPIError,
    fetch_top_artists_with_tags,
)
from constellation.fuzzy_resolver import resolve_exact
from constellation.models import GameMode, Graph, Node, Phase
from constellation.music_map_scraper import similarity_fn_from_map

logger = logging.getLogger(__name__)

DEFAULT_CACHE_FILE = Path("output/artist_cache.json")


def configure_logging(verbose: bool = False, log_file: Path | None = None):
    """Configure root logging for CLI runs."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def summarize_graph(graph: Graph) -> dict:
    """Summary statistics for a built graph."""
    if graph.is_empty:
        return {
            "nodes": 0,
            "edges": 0,
            "components": 0,
            "clusters": 0,
            "max_degree": 0,
            "avg_degree": 0.0,
        }

    degrees = {node_id: 0 for node_id in graph.node_ids}
    for edge in graph.edges:
        degrees[edge.source] += 1
        degrees[edge.target] += 1

    return {
        "nodes": len(graph.nodes),
        "edges": len(graph.edges),
        "components": count_components(graph),
        "clusters": len(graph.clusters),
        "max_degree": max(degrees.values()),
        "avg_degree": round(sum(degrees.values()) / len(degrees), 2),
    }


def apply_cli_overrides(args, config: ConnectionsConfig) -> ConnectionsConfig:
    """
    Apply --max-degree, --min-hops and --max-hops on top of a loaded config.

    Raises:
        ConfigError: If the resulting config is invalid
    """
    max_degree = getattr(args, "max_degree", None)
    min_hops = getattr(args, "min_hops", None)
    max_hops = getattr(args, "max_hops", None)

    if max_degree is not None:
        config = replace(config, graph=replace(config.graph, max_degree=max_degree))
    if min_hops is not None:
        config = replace(
            config, challenge=replace(config.challenge, min_hops=min_hops)
        )
    if max_hops is not None:
        config = replace(
            config, challenge=replace(config.challenge, max_hops=max_hops)
        )
    return validate_config(config)


def _build_from_args(args, config: ConnectionsConfig) -> Graph:
    artists = load_artists(Path(args.artists_file))

    similarity_fn = None
    if args.similarity_map:
        similarity_map = load_similar_artists_map(Path(args.similarity_map))
        similarity_fn = similarity_fn_from_map(similarity_map)

    return build_graph(artists, similarity_fn, config.graph)


def cmd_build(args, config: ConnectionsConfig) -> int:
    """Build a graph from an artists file and save it as JSON."""
    logger.info("Step 1: Building graph from %s...", args.artists_file)
    graph = _build_from_args(args, config)

    stats = summarize_graph(graph)
    logger.info(
        "  ✓ Graph built: %d nodes, %d edges, %d component(s), %d clusters",
        stats["nodes"],
        stats["edges"],
        stats["components"],
        stats["clusters"],
    )

    if args.output:
        logger.info("Step 2: Saving graph...")
        save_graph(graph, Path(args.output))
    else:
        logger.info(json.dumps(stats, indent=2))

    return 0


def cmd_fetch(args, config: ConnectionsConfig) -> int:
    """Fetch top artists from Last.fm, cache them and save an artists file."""
    cache = ArtistCache(Path(args.cache_file))
    cached = cache.read(args.username)

    if cached is not None and cached.is_fresh and not args.refresh:
        logger.info("Using cached artists for %s", args.username)
        artists = cached.artists
    else:

        def report(event: FetchProgress):
            logger.info("  [%3d%%] %s", event.percent, event.message)

        try:
            artists = fetch_top_artists_with_tags(
                args.username,
                api_key=args.api_key or LASTFM_API_KEY,
                limit=args.limit,
                period=args.period,
                progress=report,
            )
        except LastFmAPIError as e:
            logger.error("Last.fm error: %s", e)
            return 1

        graph = build_graph(artists, config=config.graph)
        cache.write(args.username, artists, graph_to_dict(graph))

    output_file = Path(args.output)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(
            {"artists": [asdict(artist) for artist in artists]},
            f,
            indent=2,
            ensure_ascii=False,
        )

    logger.info("Wrote %d artists to %s", len(artists), output_file)
    return 0


def _path_names(session: GameSession, path) -> str:
    return " → ".join(session.node(node_id).name for node_id in path)


def _pick_node(session: GameSession, text: str) -> Node | None:
    """Exact name match first, otherwise the best autocomplete match."""
    node = resolve_exact(text.strip(), session.graph.nodes)
    if node is not None:
        return node
    matches = session.search(text)
    return matches[0] if matches else None


def run_game(
    session: GameSession,
    mode: GameMode,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> bool:
    """
    Play one interactive challenge.

    Commands: an artist name to guess, /back <name>, /hint <name>,
    /search <text>, /path, /quit.

    Returns:
        True if the challenge was completed
    """
    if not session.start_game(mode):
        output_fn("Could not generate a challenge. Try different settings.")
        return False

    challenge = session.challenge
    start = session.node(challenge.start_node_id)
    target = session.node(challenge.target_node_id)
    output_fn(f"Connect {start.name} to {target.name} "
              f"(best possible: {challenge.optimal_hops} hops)")
    session.begin_playing()

    while session.phase == Phase.PLAYING:
        try:
            line = input_fn(f"[{session.node(session.current_node_id).name}] > ").strip()
        except EOFError:
            break

        if not line:
            continue
        if line == "/quit":
            break
        if line == "/path":
            output_fn(_path_names(session, session.path))
            continue
        if line.startswith("/search "):
            matches = session.search(line[len("/search "):])
            output_fn(", ".join(node.name for node in matches) or "No matches")
            continue
        if line.startswith("/back "):
            node = _pick_node(session, line[len("/back "):])
            if node is not None and session.go_back_to(node.id):
                output_fn(f"Back at {node.name}")
            else:
                output_fn("That artist is not earlier in your path")
            continue
        if line.startswith("/hint "):
            node = _pick_node(session, line[len("/hint "):])
            if node is None or not session.begin_hint_selection():
                output_fn("No hint available")
                continue
            result = session.reveal_hint_node(node.id)
            session.cancel_hint_selection()
            output_fn(result.message if result else "No hint available")
            continue

        result = session.submit_guess(line)
        if result is not None:
            output_fn(result.message)

    if session.phase != Phase.COMPLETE:
        output_fn("Challenge abandoned.")
        session.exit_game()
        return False

    output_fn(f"Your path ({session.hops} hops): {_path_names(session, session.path)}")
    if session.config.gameplay.show_optimal_path:
        output_fn(f"Optimal path ({challenge.optimal_hops} hops): "
                  f"{_path_names(session, challenge.optimal_path)}")
    output_fn(f"Guesses: {session.guess_count}  Hints: {session.hint_count}")
    score = session.score()
    if score is not None:
        output_fn(f"Time: {session.elapsed_seconds:.1f}s  Score: {score}")
    return True


def cmd_play(args, config: ConnectionsConfig) -> int:
    """Build a graph and play Connections interactively."""
    graph = _build_from_args(args, config)
    session = GameSession(
        graph,
        AdjacencyIndex.from_graph(graph),
        config=config,
        rng=random.Random(args.seed),
    )

    mode = GameMode(args.mode)
    while run_game(session, mode):
        again = input("Play again? [y/N] ").strip().lower()
        if again != "y":
            break
        session.exit_game()

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="constellation",
        description="Artist similarity graph and Connections game",
    )
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", help="Also write logs to this file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser("fetch", help="Fetch top artists from Last.fm")
    fetch.add_argument("username")
    fetch.add_argument("--output", default="output/my_artists.json")
    fetch.add_argument("--api-key")
    fetch.add_argument("--limit", type=int, default=500)
    fetch.add_argument("--period", default="overall")
    fetch.add_argument("--cache-file", default=str(DEFAULT_CACHE_FILE))
    fetch.add_argument("--refresh", action="store_true", help="Ignore fresh cache")
    fetch.set_defaults(handler=cmd_fetch)

    for name, handler, help_text in (
        ("build", cmd_build, "Build the artist graph"),
        ("play", cmd_play, "Play Connections in the terminal"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("artists_file")
        sub.add_argument("--similarity-map", help="Scraped music-map JSON")
        sub.add_argument("--max-degree", type=int, help="Cap on edges per artist")
        sub.set_defaults(handler=handler)

    subparsers.choices["build"].add_argument("--output", help="Graph JSON output")
    play = subparsers.choices["play"]
    play.add_argument("--mode", choices=[m.value for m in GameMode], default="relaxed")
    play.add_argument("--seed", type=int)
    play.add_argument("--min-hops", type=int)
    play.add_argument("--max-hops", type=int)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI function."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, Path(args.log_file) if args.log_file else None)

    try:
        config = load_config(Path(args.config) if args.config else None)
        config = apply_cli_overrides(args, config)
    except (ConfigError, FileNotFoundError) as e:
        logger.error("Configuration error: %s", e)
        return 1

    try:
        return args.handler(args, config)
    except FileNotFoundError as e:
        logger.error("%s", e)
        return 1
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON input: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
