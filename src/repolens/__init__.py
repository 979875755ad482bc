"""RepoLens - repository ingestion and structural analysis pipeline."""

__version__ = "0.1.0"
