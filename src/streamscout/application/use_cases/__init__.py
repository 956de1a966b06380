from .resolve_stream import ProviderRunner, reorder_on_id_list
from .scrape_individual import scrape_embed, scrape_source

__all__ = ["ProviderRunner", "reorder_on_id_list", "scrape_embed", "scrape_source"]
