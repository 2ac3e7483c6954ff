"""
dsa_mentor/knowledge_base/curriculum.py
The fixed 12-week (84-day) curriculum

Static reference data: built once at import, never mutated.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Optional

TOTAL_DAYS = 84


@dataclass(frozen=True)
class CurriculumEntry:
    day: int
    topic: str
    phase: str
    week: int
    is_review: bool = False


FOUNDATIONS = "Foundations"
PATTERNS = "Patterns & Techniques"
DATA_STRUCTURES = "Core Data Structures"
ADVANCED = "Advanced Topics"

# (topic, phase, is_review) in day order; week is derived from the day
_DAYS = [
    # Phase 1: Foundations (Days 1-14)
    ("Arrays & Basic Operations", FOUNDATIONS, False),
    ("String Manipulation", FOUNDATIONS, False),
    ("Time & Space Complexity", FOUNDATIONS, False),
    ("Standard Library Functions", FOUNDATIONS, False),
    ("Basic Math Operations", FOUNDATIONS, False),
    ("Input/Output Handling", FOUNDATIONS, False),
    ("Week 1 Review & Mixed Practice", FOUNDATIONS, True),
    ("Advanced Array Techniques", FOUNDATIONS, False),
    ("String Algorithms", FOUNDATIONS, False),
    ("Bit Manipulation Basics", FOUNDATIONS, False),
    ("Number Theory", FOUNDATIONS, False),
    ("Pattern Recognition", FOUNDATIONS, False),
    ("Problem Solving Strategies", FOUNDATIONS, False),
    ("Week 2 Review & Assessment", FOUNDATIONS, True),

    # Phase 2: Patterns & Techniques (Days 15-35)
    ("Two Pointers Technique", PATTERNS, False),
    ("Hash Tables & Maps", PATTERNS, False),
    ("Sorting Algorithms", PATTERNS, False),
    ("Binary Search", PATTERNS, False),
    ("Sliding Window", PATTERNS, False),
    ("Basic Recursion", PATTERNS, False),
    ("Week 3 Review & Mixed Practice", PATTERNS, True),
    ("Advanced Two Pointers", PATTERNS, False),
    ("Hash Set Applications", PATTERNS, False),
    ("Merge Sort & Quick Sort", PATTERNS, False),
    ("Binary Search Variations", PATTERNS, False),
    ("Advanced Sliding Window", PATTERNS, False),
    ("Recursion with Memoization", PATTERNS, False),
    ("Week 4 Review & Assessment", PATTERNS, True),
    ("Prefix Sums", PATTERNS, False),
    ("Frequency Counting", PATTERNS, False),
    ("Custom Sorting", PATTERNS, False),
    ("Search in Rotated Arrays", PATTERNS, False),
    ("Multiple Sliding Windows", PATTERNS, False),
    ("Divide and Conquer", PATTERNS, False),
    ("Week 5 Review & Mixed Practice", PATTERNS, True),

    # Phase 3: Core Data Structures (Days 36-63)
    ("Linked Lists Basics", DATA_STRUCTURES, False),
    ("Linked List Manipulation", DATA_STRUCTURES, False),
    ("Stacks Implementation", DATA_STRUCTURES, False),
    ("Stack Applications", DATA_STRUCTURES, False),
    ("Queues & Deques", DATA_STRUCTURES, False),
    ("Queue Applications", DATA_STRUCTURES, False),
    ("Week 6 Review & Assessment", DATA_STRUCTURES, True),
    ("Binary Trees Basics", DATA_STRUCTURES, False),
    ("Tree Traversals", DATA_STRUCTURES, False),
    ("Binary Search Trees", DATA_STRUCTURES, False),
    ("Tree Construction", DATA_STRUCTURES, False),
    ("Backtracking Introduction", DATA_STRUCTURES, False),
    ("Backtracking Applications", DATA_STRUCTURES, False),
    ("Week 7 Review & Mixed Practice", DATA_STRUCTURES, True),
    ("Heaps & Priority Queues", DATA_STRUCTURES, False),
    ("Heap Applications", DATA_STRUCTURES, False),
    ("Advanced Tree Problems", DATA_STRUCTURES, False),
    ("Tree Optimization", DATA_STRUCTURES, False),
    ("Complex Backtracking", DATA_STRUCTURES, False),
    ("Permutations & Combinations", DATA_STRUCTURES, False),
    ("Week 8 Review & Assessment", DATA_STRUCTURES, True),
    ("Trie Data Structure", DATA_STRUCTURES, False),
    ("Advanced Linked Lists", DATA_STRUCTURES, False),
    ("Stack & Queue Combinations", DATA_STRUCTURES, False),
    ("Tree Balancing", DATA_STRUCTURES, False),
    ("Advanced Heaps", DATA_STRUCTURES, False),
    ("Data Structure Design", DATA_STRUCTURES, False),
    ("Week 9 Review & Mixed Practice", DATA_STRUCTURES, True),

    # Phase 4: Advanced Topics (Days 64-84)
    ("Graph Representation", ADVANCED, False),
    ("Graph Traversal (BFS/DFS)", ADVANCED, False),
    ("Shortest Path Algorithms", ADVANCED, False),
    ("Dynamic Programming Basics", ADVANCED, False),
    ("DP Pattern Recognition", ADVANCED, False),
    ("Greedy Algorithms", ADVANCED, False),
    ("Week 10 Review & Assessment", ADVANCED, True),
    ("Advanced Graph Algorithms", ADVANCED, False),
    ("Complex DP Problems", ADVANCED, False),
    ("Advanced Greedy", ADVANCED, False),
    ("Union Find", ADVANCED, False),
    ("Segment Trees", ADVANCED, False),
    ("Advanced Optimization", ADVANCED, False),
    ("Week 11 Review & Mixed Practice", ADVANCED, True),
    ("System Design Basics", ADVANCED, False),
    ("Interview Preparation", ADVANCED, False),
    ("Mock Interviews", ADVANCED, False),
    ("Final Review Session 1", ADVANCED, True),
    ("Final Review Session 2", ADVANCED, True),
    ("Capstone Challenge", ADVANCED, False),
    ("Graduation & Next Steps", ADVANCED, True),
]

CURRICULUM: Mapping[int, CurriculumEntry] = MappingProxyType({
    day: CurriculumEntry(day=day, topic=topic, phase=phase, week=(day - 1) // 7 + 1, is_review=is_review)
    for day, (topic, phase, is_review) in enumerate(_DAYS, start=1)
})

assert len(CURRICULUM) == TOTAL_DAYS


def get_entry(day: int) -> Optional[CurriculumEntry]:
    return CURRICULUM.get(day)


def default_topic(day: int) -> str:
    """Topic used when a progress record is created without one."""
    entry = CURRICULUM.get(day)
    return entry.topic if entry else f"Day {day} Topic"


def overview() -> List[CurriculumEntry]:
    return [CURRICULUM[day] for day in sorted(CURRICULUM)]
