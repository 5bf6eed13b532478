"""Generation run orchestration."""

from sqlitebridge.generate.ops import Artifact, GenerateOps, GenerationResult

__all__ = ["Artifact", "GenerateOps", "GenerationResult"]
