"""YAML content loading for graphs and registries."""

from wayfinder.content.loader import ContentBundle, load_content, load_graph, load_graphs

__all__ = ["ContentBundle", "load_content", "load_graph", "load_graphs"]
