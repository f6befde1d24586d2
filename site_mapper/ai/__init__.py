"""site_mapper.ai: bundled summarization collaborator."""

from site_mapper.ai.glm import GLMSummarizer, SummarizerError

__all__ = ["GLMSummarizer", "SummarizerError"]
