"""Agent module - model output -> validated decision."""
from chartlens.agent.decision_extractor import DecisionExtractor, extract_json
from chartlens.agent.decision_validator import DecisionValidator, get_decision_validator
from chartlens.agent.pipeline import PipelineResult, VisionDecisionPipeline
from chartlens.agent.prompt_builder import LensPromptBuilder
