"""
AI engine: analyzer capability interface, prompt/response parsing and the
Gemini-backed adapter.
"""

from backend_guard.ai_engine.adapter import AnalysisAdapter, AnalysisOptions
from backend_guard.ai_engine.gemini import GeminiAnalyzer

__all__ = ["AnalysisAdapter", "AnalysisOptions", "GeminiAnalyzer"]
