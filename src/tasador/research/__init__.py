"""
Módulo de research de precio de mercado.
"""

from tasador.research.pipeline import SourceResearchPipeline

__all__ = ["SourceResearchPipeline"]
