"""
Pulseflow Debug Agent - Agents Module
Created: 2026-01-14

LLM 기반 진단 설명 에이전트
"""

from .llm_analyzer import LLMAnalyzer

__all__ = ["LLMAnalyzer"]
