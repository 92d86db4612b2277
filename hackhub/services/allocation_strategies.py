"""
Allocation Strategies

Interchangeable algorithms mapping (eligible participants x eligible tasks)
to a list of (participant, task) pairs.

Supports manual, random and skill-matched ("smart") modes. All three share
the same quota / uniqueness loop in AllocationStrategy.allocate; a variant
only decides which of the still-available tasks a participant gets next.

existing_pairs is mutated in place: every pair produced is added
immediately so later picks in the same batch cannot repeat it.
"""
import random
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple, Any

from hackhub.exceptions import DuplicatePairError, QuotaExceededError
from hackhub.orm.task_assignment import AssignmentMethod

logger = logging.getLogger(__name__)

Pair = Tuple[int, int]  # (participant_id, task_id)


@dataclass
class ParticipantCandidate:
    """Participant representation for allocation algorithms."""
    user_id: int
    name: str
    email: Optional[str] = None
    skills: List[str] = field(default_factory=list)


@dataclass
class TaskCandidate:
    """Task representation for allocation algorithms."""
    task_id: int
    title: str
    tags: List[str] = field(default_factory=list)


@dataclass
class AllocatedPair:
    """A (participant, task) decision produced by a strategy."""
    participant: ParticipantCandidate
    task: TaskCandidate
    match_score: Optional[float] = None

    @property
    def key(self) -> Pair:
        return (self.participant.user_id, self.task.task_id)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "participant_id": self.participant.user_id,
            "task_id": self.task.task_id,
        }
        if self.match_score is not None:
            result["match_score"] = self.match_score
        return result


def calculate_match_score(participant_skills: List[str], task_tags: List[str]) -> float:
    """
    Skill overlap between a participant and a task.

    A skill matches when some tag contains it or it contains the tag,
    case-insensitively ("java" matches "javascript"). The match count is
    divided by the larger of the two list sizes.

    Returns 0.0 when either list is empty.
    """
    if not participant_skills or not task_tags:
        return 0.0

    normalized_skills = [s.lower() for s in participant_skills]
    normalized_tags = [t.lower() for t in task_tags]

    matches = [
        skill for skill in normalized_skills
        if any(tag in skill or skill in tag for tag in normalized_tags)
    ]

    return len(matches) / max(len(normalized_skills), len(normalized_tags))


class AllocationStrategy:
    """
    Base strategy: iterate participants in selector order, fill each
    participant's remaining quota one pick at a time.

    A participant whose available-task set runs dry simply stops
    receiving tasks; partial fulfillment is not an error.
    """

    method: AssignmentMethod

    def allocate(
        self,
        participants: List[ParticipantCandidate],
        tasks: List[TaskCandidate],
        existing_pairs: Set[Pair],
        quota_of: Callable[[ParticipantCandidate], int],
    ) -> List[AllocatedPair]:
        pairs: List[AllocatedPair] = []

        for participant in participants:
            for _ in range(quota_of(participant)):
                available = [
                    task for task in tasks
                    if (participant.user_id, task.task_id) not in existing_pairs
                ]
                if not available:
                    logger.debug(f"Task pool exhausted for participant {participant.user_id}")
                    break

                task, score = self.pick(participant, available)
                existing_pairs.add((participant.user_id, task.task_id))
                pairs.append(AllocatedPair(participant=participant, task=task, match_score=score))

        return pairs

    def pick(
        self,
        participant: ParticipantCandidate,
        available: List[TaskCandidate]
    ) -> Tuple[TaskCandidate, Optional[float]]:
        raise NotImplementedError


class ManualStrategy(AllocationStrategy):
    """
    Caller-supplied single pair. Allocation degenerates to validation:
    the pair must be new and the participant must have quota left.
    """

    method = AssignmentMethod.MANUAL

    def __init__(self, tasks_per_participant: int = 0):
        self.tasks_per_participant = tasks_per_participant

    def allocate(self, participants, tasks, existing_pairs, quota_of):
        if len(participants) != 1 or len(tasks) != 1:
            raise ValueError("Manual allocation takes exactly one participant and one task")

        participant, task = participants[0], tasks[0]
        if (participant.user_id, task.task_id) in existing_pairs:
            raise DuplicatePairError(task.task_id, participant.user_id)
        if quota_of(participant) <= 0:
            raise QuotaExceededError(participant.user_id, self.tasks_per_participant)

        existing_pairs.add((participant.user_id, task.task_id))
        return [AllocatedPair(participant=participant, task=task)]


class RandomStrategy(AllocationStrategy):
    """
    Uniform random draw from the participant's available tasks.

    A fixed seed makes the draw reproducible; without one a
    SystemRandom source is used.
    """

    method = AssignmentMethod.RANDOM

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.randomizer = random.Random(seed) if seed is not None else random.SystemRandom()

    def pick(self, participant, available):
        return self.randomizer.choice(available), None


class SmartStrategy(AllocationStrategy):
    """Highest skill-match score wins; ties keep enumeration order."""

    method = AssignmentMethod.SMART

    def pick(self, participant, available):
        scored = [
            (task, calculate_match_score(participant.skills, task.tags))
            for task in available
        ]
        # sorted() is stable, so equal scores keep selector order
        scored = sorted(scored, key=lambda item: item[1], reverse=True)
        return scored[0]


def get_strategy(
    method: AssignmentMethod,
    seed: Optional[int] = None,
    tasks_per_participant: int = 0
) -> AllocationStrategy:
    if method == AssignmentMethod.MANUAL:
        return ManualStrategy(tasks_per_participant=tasks_per_participant)
    elif method == AssignmentMethod.RANDOM:
        return RandomStrategy(seed=seed)
    elif method == AssignmentMethod.SMART:
        return SmartStrategy()
    else:
        raise ValueError(f"Unknown assignment method: {method}")
