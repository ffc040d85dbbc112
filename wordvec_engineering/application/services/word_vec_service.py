from __future__ import annotations
from dataclasses import dataclass
from loguru import logger

from wordvec_engineering.application.settings import Settings
from wordvec_engineering.application.services.loader import VectorSource, load_word_vectors
from wordvec_engineering.application.services.vec_store import VecStore
from wordvec_engineering.application.services.vec_sim_table import VecSimTable


@dataclass
class WordVecService:
    settings: Settings
    # full corpus, hash table + linear scan search
    store: VecStore
    # small subset with every pair precomputed
    table: VecSimTable

    @classmethod
    def build(cls, settings: Settings, source: VectorSource | None = None) -> "WordVecService":
        """Read the vector file once and build both structures from it."""
        if source is None:
            if settings.vector_file:
                source = load_word_vectors(settings.vector_file)
            else:
                logger.warning("vector_file is not set; starting with empty stores")
                source = VectorSource()

        store = VecStore.from_settings(settings, source=source)
        table = VecSimTable.from_settings(settings, source=source)
        return cls(settings=settings, store=store, table=table)

    def info(self) -> dict:
        return {
            "store": self.store.info().as_dict(),
            "table": self.table.info().as_dict(),
        }
