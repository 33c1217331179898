# tod_ai/agents/__init__.py
from tod_ai.agents.mentor_agent import MentorAgent
from tod_ai.agents.research_agent import ResearchRecommendation, recommend_papers

__all__ = [
    'MentorAgent',
    'ResearchRecommendation',
    'recommend_papers',
]
