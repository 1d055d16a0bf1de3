"""
Game content generation.

``ContentGenerator`` is the seam for a model-backed generator. The only
implementation today, ``TemplateContentGenerator``, fills fixed English
templates with the top keywords of the document.
"""
from __future__ import annotations

import time
from typing import Dict, List, Optional

import structlog

from upcora.services.concepts import extract_concepts
from upcora.services.logging import log_performance
from upcora.services.media import MediaSearchResult, search_media_content
from upcora.services.text_utils import truncate_for_budget

logger = structlog.get_logger()

GENERATION_TOKEN_BUDGET = 6000


class ContentGenerator:
    """Turns extracted study text into a game-data dict."""

    name = "base"

    def generate(self, text: str) -> Dict:
        raise NotImplementedError


class _Keywords:
    def __init__(self, concepts: List[str]):
        self.concepts = concepts

    def get(self, index: int, fallback: str) -> str:
        return self.concepts[index] if index < len(self.concepts) else fallback

    def top(self, count: int) -> List[str]:
        return self.concepts[:count]


def _image(media: MediaSearchResult, index: int, alt_text: str, description: str, search_terms: List[str]) -> Dict:
    found = media.images[index] if index < len(media.images) else None
    return {
        "url": found.url if found else None,
        "altText": found.alt_text if found else alt_text,
        "description": description,
        "searchTerms": search_terms,
    }


def _roadmap(kw: _Keywords) -> List[Dict]:
    first = kw.get(0, "the core concepts")
    second = kw.get(1, "key principles")
    third = kw.get(2, "practical application")
    return [
        {
            "module": f"Foundations of {first}",
            "moduleDescription": f"Build a working vocabulary around {first} and see where it fits.",
            "estimatedTime": "20 minutes",
            "lessons": [
                {
                    "title": f"What is {first}?",
                    "summary": f"An overview of {first} and why it matters.",
                    "estimatedTime": "10 minutes",
                    "difficultyLevel": "beginner",
                    "learningObjectives": [f"Define {first} in your own words"],
                    "keyTopics": kw.top(2) or [first],
                },
                {
                    "title": f"How {first} relates to {second}",
                    "summary": f"Connect {first} with {second} through worked examples.",
                    "estimatedTime": "10 minutes",
                    "difficultyLevel": "beginner",
                    "learningObjectives": [f"Explain the link between {first} and {second}"],
                    "keyTopics": [first, second],
                },
            ],
        },
        {
            "module": f"Applying {second}",
            "moduleDescription": f"Move from theory to practice with {second} and {third}.",
            "estimatedTime": "30 minutes",
            "lessons": [
                {
                    "title": f"{second.capitalize()} in practice",
                    "summary": f"Real-world situations where {second} drives decisions.",
                    "estimatedTime": "15 minutes",
                    "difficultyLevel": "intermediate",
                    "learningObjectives": [f"Apply {second} to a realistic scenario"],
                    "keyTopics": [second],
                },
                {
                    "title": f"Analysing {third}",
                    "summary": f"Break down {third} into steps you can evaluate.",
                    "estimatedTime": "15 minutes",
                    "difficultyLevel": "advanced",
                    "learningObjectives": [f"Evaluate outcomes of {third}"],
                    "keyTopics": [third],
                },
            ],
        },
    ]


def _diagrams(kw: _Keywords) -> List[Dict]:
    first = kw.get(0, "Main concept")
    second = kw.get(1, "Key principle")
    third = kw.get(2, "Application")
    return [
        {
            "topic": f"Concept map of {first}",
            "type": "concept-map",
            "description": f"How {first}, {second} and {third} relate to each other.",
            "diagramCode": (
                "graph TD\n"
                f'    A["{first}"] --> B["{second}"]\n'
                f'    A --> C["{third}"]\n'
                f'    B --> D["Outcomes"]\n'
                "    C --> D"
            ),
            "altText": f"Concept map linking {first} to {second} and {third}",
        },
        {
            "topic": f"Process for applying {first}",
            "type": "flowchart",
            "description": "A step-by-step process from analysis to evaluation.",
            "diagramCode": (
                "flowchart LR\n"
                '    S["Analyse"] --> P["Plan"]\n'
                '    P --> E["Execute"]\n'
                '    E --> V["Evaluate"]\n'
                "    V -->|refine| P"
            ),
            "altText": f"Flowchart of the process for applying {first}",
        },
    ]


def _video(kw: _Keywords, main_topic: str) -> Dict:
    first = kw.get(0, "the topic")
    second = kw.get(1, "its principles")
    return {
        "title": f"The Story of {first.capitalize()}",
        "visualStyle": "animated explainer",
        "totalDuration": "3 minutes",
        "scenes": [
            {
                "sceneNumber": 1,
                "duration": "45 seconds",
                "narration": f"Meet {first}: the idea at the centre of {main_topic}.",
                "visuals": f"Title card introducing {first}",
                "characters": ["Narrator"],
                "environment": "classroom",
                "transitions": "fade in",
            },
            {
                "sceneNumber": 2,
                "duration": "75 seconds",
                "narration": f"Watch how {second} shapes every decision our guide makes.",
                "visuals": f"Animated walkthrough of {second}",
                "characters": ["Narrator", "Guide"],
                "environment": "workplace",
                "transitions": "slide left",
            },
            {
                "sceneNumber": 3,
                "duration": "60 seconds",
                "narration": f"Now it's your turn to put {first} to work.",
                "visuals": "Recap of the key ideas with a call to action",
                "characters": ["Guide"],
                "environment": "studio",
                "transitions": "fade out",
            },
        ],
    }


def _roleplay(kw: _Keywords, media: MediaSearchResult) -> Dict:
    first = kw.get(0, "these concepts")
    second = kw.get(1, "secondary factors")
    return {
        "scenario": (
            f"You are a professional working in a field where {first} is crucial for success. "
            "Your organization is facing a challenging situation that requires you to apply "
            "the principles you've learned."
        ),
        "backgroundImage": _image(
            media, 3, "Professional workplace scenario",
            f"Realistic workplace setting where {first} is applied",
            [kw.get(0, "workplace"), "professional"],
        ),
        "steps": [
            {
                "id": "step1",
                "text": (
                    f"A critical situation has emerged that directly relates to {first}. "
                    "Stakeholders are looking to you for guidance. What's your initial approach?"
                ),
                "mediaContent": {"image": _image(
                    media, 1, "Team meeting and discussion",
                    f"Decision-making in a {first} context",
                    [kw.get(0, "decision"), "meeting"],
                )},
                "choices": [
                    {
                        "id": "a",
                        "label": f"Apply the theoretical framework of {first} directly",
                        "feedback": f"Excellent foundation! Starting from proven {first} principles gives a solid base for decisions.",
                        "nextStep": "step2",
                        "points": 15,
                    },
                    {
                        "id": "b",
                        "label": "Analyze the practical constraints and stakeholder needs first",
                        "feedback": "Strategic thinking! Understanding the real-world context is crucial for implementation.",
                        "nextStep": "step2",
                        "points": 12,
                    },
                    {
                        "id": "c",
                        "label": "Gather additional data and expert opinions before proceeding",
                        "feedback": "Thoughtful approach! Diverse perspectives reduce risk and improve decision quality.",
                        "nextStep": "step2",
                        "points": 10,
                    },
                ],
            },
            {
                "id": "step2",
                "text": (
                    "As you implement your approach, the situation turns out more complex than expected. "
                    f"There are conflicting priorities related to {second}. How do you adapt?"
                ),
                "mediaContent": {"image": _image(
                    media, 2, "Complex problem solving",
                    "Adaptive problem-solving and complexity management",
                    [kw.get(1, "complexity"), "adaptation"],
                )},
                "choices": [
                    {
                        "id": "a",
                        "label": f"Integrate insights from {second} to develop a hybrid solution",
                        "feedback": f"Outstanding adaptive thinking! Synthesizing approaches around {second} shows mastery.",
                        "nextStep": None,
                        "points": 20,
                    },
                    {
                        "id": "b",
                        "label": "Reassess priorities and adjust the strategy while keeping core principles",
                        "feedback": "Excellent balance of consistency and flexibility.",
                        "nextStep": None,
                        "points": 18,
                    },
                    {
                        "id": "c",
                        "label": "Consult with stakeholders to build consensus around a modified approach",
                        "feedback": "Smart collaborative strategy that builds buy-in for implementation.",
                        "nextStep": None,
                        "points": 15,
                    },
                ],
            },
        ],
    }


def _quiz(kw: _Keywords, media: MediaSearchResult) -> Dict:
    first = kw.get(0, "these concepts")
    second = kw.get(1, "key principles")
    return {
        "theme": f"{kw.get(0, 'Knowledge').capitalize()} Mastery Challenge",
        "gameFormat": "multimedia-quest",
        "questions": [
            {
                "id": "q1",
                "type": "multiple-choice",
                "question": f"What is the most critical factor when applying {first} in professional settings?",
                "options": [
                    "Strict adherence to theoretical models",
                    "Balancing theory with practical constraints",
                    "Prioritizing stakeholder preferences",
                    "Following established organizational procedures",
                ],
                "answerIndex": 1,
                "explanation": (
                    f"Effective practice combines an understanding of {first} with practical judgement "
                    "about context, constraints and stakeholder needs."
                ),
                "mediaContent": {"image": _image(
                    media, 0, f"Visual representation of {first}",
                    f"Relationship between theory and practice in {first}",
                    [kw.get(0, "theory"), "practice"],
                )},
                "difficulty": "medium",
                "points": 15,
            },
            {
                "id": "q2",
                "type": "multiple-choice",
                "question": f"When facing dilemmas related to {second}, what should be your primary consideration?",
                "options": [
                    "Immediate organizational benefits",
                    "Long-term consequences for all stakeholders",
                    "Personal career advancement",
                    "Industry standard practices",
                ],
                "answerIndex": 1,
                "explanation": (
                    "Sound decisions weigh long-term consequences for everyone affected, which keeps "
                    f"outcomes aligned with {second}."
                ),
                "difficulty": "hard",
                "points": 20,
            },
            {
                "id": "q3",
                "type": "drag-drop",
                "question": f"Organize these elements by phase when implementing {first}:",
                "items": [
                    "Stakeholder analysis",
                    "Risk assessment",
                    "Resource allocation",
                    "Implementation planning",
                    "Outcome measurement",
                ],
                "categories": ["Phase 1: Foundation", "Phase 2: Execution", "Phase 3: Evaluation"],
                "correctMapping": {
                    "Stakeholder analysis": "Phase 1: Foundation",
                    "Risk assessment": "Phase 1: Foundation",
                    "Resource allocation": "Phase 2: Execution",
                    "Implementation planning": "Phase 2: Execution",
                    "Outcome measurement": "Phase 3: Evaluation",
                },
                "explanation": (
                    "Implementation moves from foundation (stakeholders and risk) through execution "
                    "(planning and resources) to evaluation (measuring outcomes)."
                ),
                "difficulty": "hard",
                "points": 25,
            },
            {
                "id": "q4",
                "type": "sequencing",
                "question": f"Put the steps for studying {first} in the most effective order:",
                "items": ["Practice", "Review", "Understand", "Explore"],
                "correctOrder": ["Explore", "Understand", "Practice", "Review"],
                "explanation": "Exploration builds context, understanding enables practice, and review consolidates it.",
                "difficulty": "medium",
                "points": 20,
            },
        ],
    }


def _gamification(kw: _Keywords) -> Dict:
    first = kw.get(0, "these concepts")
    return {
        "achievements": [
            {
                "id": "perfect_understanding",
                "name": "Perfect Understanding",
                "description": "Answered all questions correctly",
                "icon": "trophy",
                "condition": "perfect_score",
            },
            {
                "id": "strategic_thinker",
                "name": "Strategic Thinker",
                "description": "Demonstrated excellent strategic reasoning in roleplay",
                "icon": "brain",
                "condition": "high_roleplay_score",
            },
            {
                "id": "speed_learner",
                "name": "Speed Learner",
                "description": "Completed the module in record time",
                "icon": "zap",
                "condition": "fast_completion",
            },
        ],
        "progressMilestones": ["25%", "50%", "75%", "100%"],
        "bonusChallenges": [
            {
                "title": f"Real-World Application of {kw.get(0, 'Key Concepts')}",
                "description": f"Design a practical plan for applying {first} in your current environment",
                "points": 30,
            }
        ],
    }


def build_game_data(text: str, concepts: List[str], media: Optional[MediaSearchResult] = None) -> Dict:
    media = media or MediaSearchResult()
    kw = _Keywords(concepts)
    main_topic = " ".join(text.split()[:5])
    first = kw.get(0, "learning")

    return {
        "title": f"Interactive Learning: {main_topic}...",
        "summary": (
            f"Discover the world of {first} through a guided roadmap, visual diagrams, "
            "a short story video, a roleplay simulation and a mastery quiz."
        ),
        "keyTopics": kw.top(3),
        "visualConcepts": [
            f"Visual representation of {kw.get(0, 'main concept')}",
            f"Practical application of {kw.get(1, 'key principle')}",
        ],
        "learningObjectives": [
            f"Master the fundamental principles of {kw.get(0, 'the subject matter')}",
            "Apply theoretical knowledge to real-world scenarios",
            "Analyze complex situations using evidence-based reasoning",
            "Develop critical thinking skills through interactive challenges",
        ],
        "roadmap": _roadmap(kw),
        "diagrams": _diagrams(kw),
        "video": _video(kw, main_topic),
        "mediaContent": {
            "headerImage": {
                **_image(
                    media, 0, f"Visual introduction to {first}",
                    f"Visual that represents the core concepts of {main_topic}",
                    kw.top(2),
                ),
                "purpose": "introduction",
            },
            "conceptImages": [
                {
                    "concept": kw.get(i, f"Concept {i + 1}"),
                    "url": img.url,
                    "altText": img.alt_text,
                    "description": f"Visual explanation of {kw.get(i, f'concept {i + 1}')}",
                    "searchTerms": [kw.get(i, "concept")],
                    "placement": f"section{i + 1}",
                }
                for i, img in enumerate(media.images[1:3])
            ],
            "videos": [
                {
                    "topic": f"{kw.get(i, 'Key concept')} in action",
                    "url": vid.url,
                    "altText": vid.alt_text,
                    "description": f"Educational video demonstrating {kw.get(i, 'practical application')}",
                    "searchTerms": [kw.get(i, "application")],
                    "placement": "introduction" if i == 0 else "demonstration",
                }
                for i, vid in enumerate(media.videos[:2])
            ],
        },
        "roleplay": _roleplay(kw, media),
        "quiz": _quiz(kw, media),
        "gamification": _gamification(kw),
    }


class TemplateContentGenerator(ContentGenerator):
    name = "template"

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds

    @log_performance("generate_game")
    def generate(self, text: str) -> Dict:
        processed = truncate_for_budget(text, GENERATION_TOKEN_BUDGET)
        concepts = extract_concepts(processed)
        media = search_media_content(processed)

        game = build_game_data(processed, concepts, media)

        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)

        logger.info(
            "game_generated",
            generator=self.name,
            concepts=concepts[:3],
            questions=len(game["quiz"]["questions"]),
            media_found=media.total_found,
        )
        return game
