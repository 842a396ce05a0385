"""Step identifiers, per-step field templates and the declarative progress tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple


class Step(str, Enum):
    """The nine pages of the journal, in order."""

    WELCOME = "welcome"
    FOCUS = "focus"
    INFLUENCES = "influences"
    CONNECTIONS = "connections"
    MAPPING = "mapping"
    PATTERNS = "patterns"
    GOALS = "goals"
    ROADMAP = "roadmap"
    COMMITMENT = "commitment"

    @classmethod
    def parse(cls, value: "Step | str | None") -> Optional["Step"]:
        """Return the matching step or ``None`` for unknown identifiers."""
        if isinstance(value, Step):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


STEP_SEQUENCE: List[Step] = list(Step)


class FieldKind(str, Enum):
    """Input flavours a step template can contain."""

    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    CHECKBOX_GROUP = "checkbox_group"
    DATE = "date"
    HIDDEN = "hidden"
    DISPLAY = "display"


@dataclass(slots=True, frozen=True)
class FieldSpec:
    """One labelled input rendered by a step."""

    id: str
    label: str
    kind: FieldKind = FieldKind.TEXTAREA
    placeholder: str = ""
    options: Tuple[Tuple[str, str], ...] = ()
    readonly: bool = False

    @property
    def captured(self) -> bool:
        """Display-only fields are rendered but never written back on step exit."""
        return self.kind is not FieldKind.DISPLAY

    @property
    def option_values(self) -> Tuple[str, ...]:
        return tuple(value for value, _ in self.options)

    def empty_value(self) -> Any:
        if self.kind is FieldKind.CHECKBOX_GROUP:
            return []
        if self.kind is FieldKind.CHECKBOX:
            return False
        return ""


@dataclass(slots=True, frozen=True)
class StepTemplate:
    """Static content of a step: heading, intro copy and ordered inputs."""

    step: Step
    title: str
    intro: str = ""
    fields: Tuple[FieldSpec, ...] = field(default_factory=tuple)

    def get(self, field_id: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.id == field_id:
                return spec
        return None

    @property
    def field_ids(self) -> List[str]:
        return [spec.id for spec in self.fields]


LIFE_AREAS: Tuple[Tuple[str, str], ...] = (
    ("family", "Family / Parenting"),
    ("relationships", "Romantic Life / Relationships"),
    ("career", "Work / Career"),
    ("energy", "Energy / Burnout"),
    ("emotional", "Emotional Well-being"),
    ("focus", "Mental Focus / Productivity"),
    ("health", "Physical Health"),
    ("time", "Time Management"),
    ("money", "Money / Finances"),
    ("growth", "Learning / Growth"),
    ("beliefs", "Beliefs / Self-worth"),
    ("environment", "Environment / Home"),
)

LOOP_TYPES: Tuple[Tuple[str, str], ...] = (
    ("helping", "Helping me (+)"),
    ("hurting", "Hurting me (-)"),
    ("mixed", "Mixed - could work better"),
)

PATTERN_CARDS: Tuple[Tuple[str, str], ...] = (
    ("caretaker", "The Caretaker System"),
    ("perfectionist", "The Perfectionist System"),
    ("identity", "The Identity Loss System"),
    ("guilt", "The Guilt-Paralysis System"),
    ("overwhelm", "The Overwhelm System"),
    ("unique", "My Pattern is Unique"),
)

PLEDGE_NAME_PLACEHOLDER = "[Your Name]"
PLEDGE_TEMPLATE = (
    "I, {name}, commit to the journey of understanding and intentionally shifting my system. "
    "I will focus on my leverage point, knowing that small, consistent actions create powerful "
    "ripple effects. I trust my inner wisdom and am ready to embrace the clarity that unfolds."
)


def _welcome() -> StepTemplate:
    return StepTemplate(
        step=Step.WELCOME,
        title="Welcome to Your Clarity Map",
        intro=(
            "You know something needs to shift. This journal walks you through nine short steps: "
            "name your focus, look at what gives and drains your energy, connect the dots, map the "
            "system, find the loop, and anchor one small commitment."
        ),
    )


def _focus() -> StepTemplate:
    return StepTemplate(
        step=Step.FOCUS,
        title="Define Your Focus",
        fields=(
            FieldSpec(
                "lifeChallenge",
                "What part of your life feels blurred, tangled, or unsettled?",
                placeholder="Take your time... there are no wrong answers here.",
            ),
            FieldSpec(
                "lifeAreas",
                "Which areas of life does this touch?",
                kind=FieldKind.CHECKBOX_GROUP,
                options=LIFE_AREAS,
            ),
            FieldSpec("otherArea", "Other area", kind=FieldKind.TEXT, placeholder="Other: ____________"),
            FieldSpec(
                "wantMore",
                "In one sentence, what do you want more of in your life right now?",
                kind=FieldKind.TEXT,
                placeholder="I want to...",
            ),
        ),
    )


def _influences() -> StepTemplate:
    return StepTemplate(
        step=Step.INFLUENCES,
        title="Explore Influences",
        intro="List several items separated by commas; the first four become nodes on your map.",
        fields=(
            FieldSpec("energyGivers", "What gives you energy?"),
            FieldSpec("energyDrainers", "What drains you - emotionally, mentally, physically?"),
            FieldSpec("stuckRoutines", "Routines you feel stuck in:"),
            FieldSpec("expectations", "External expectations:"),
            FieldSpec("pressures", "Pressure check:"),
            FieldSpec("repeatedBehaviors", "Repeated behaviors:"),
        ),
    )


def _connections() -> StepTemplate:
    return StepTemplate(
        step=Step.CONNECTIONS,
        title="Connect the Dots",
        fields=(
            FieldSpec("focusAreaRepeat", "Your focus area:", kind=FieldKind.TEXT, readonly=True),
            FieldSpec("energyGiver1", "Energy giver 1:", kind=FieldKind.TEXT, placeholder="Your top energy giver"),
            FieldSpec("energyConnection1", "How it connects to your focus:"),
            FieldSpec("energyGiver2", "Energy giver 2:", kind=FieldKind.TEXT, placeholder="Your second energy giver"),
            FieldSpec("energyConnection2", "How it connects to your focus:"),
            FieldSpec("energyDrainer1", "Energy drainer 1:", kind=FieldKind.TEXT, placeholder="Your top energy drainer"),
            FieldSpec("drainerConnection1", "How it connects to your focus:"),
            FieldSpec(
                "energyDrainer2", "Energy drainer 2:", kind=FieldKind.TEXT, placeholder="Your second energy drainer"
            ),
            FieldSpec("drainerConnection2", "How it connects to your focus:"),
            FieldSpec("strongestPattern", "Strongest pattern:", kind=FieldKind.TEXT),
            FieldSpec("patternConnection", "How it keeps you stuck:"),
            FieldSpec("ahaReflection", 'What\'s your biggest "aha" moment?'),
        ),
    )


def _mapping() -> StepTemplate:
    return StepTemplate(
        step=Step.MAPPING,
        title="Map Your Connections",
        fields=(
            FieldSpec(
                "mapFocus",
                "Your focus area (this will be the center of your map):",
                kind=FieldKind.TEXT,
            ),
            FieldSpec("mapEnergyGivers", "Energy Givers:", kind=FieldKind.DISPLAY),
            FieldSpec("mapEnergyDrainers", "Energy Drainers:", kind=FieldKind.DISPLAY),
            FieldSpec("mapPattern", "Strongest Pattern:", kind=FieldKind.DISPLAY),
            FieldSpec("strongestNegative", "What's the strongest negative influence?"),
            FieldSpec("strongestPositive", "What's your most powerful positive resource?"),
            FieldSpec("chainReaction", "What pattern do you see? Do certain influences create a chain reaction?"),
            FieldSpec("leveragePoint", "Your leverage point - where could a small change make the biggest difference?"),
        ),
    )


def _patterns() -> StepTemplate:
    return StepTemplate(
        step=Step.PATTERNS,
        title="Find Your Pattern",
        fields=(
            FieldSpec("mainLoop", "Describe your main loop in words:"),
            FieldSpec(
                "loopType",
                "Is this loop helping (+) you or hurting (-) you?",
                kind=FieldKind.SELECT,
                options=LOOP_TYPES,
            ),
            FieldSpec("selectedPattern", "Common life system pattern", kind=FieldKind.HIDDEN, options=PATTERN_CARDS),
            FieldSpec(
                "connectionToChange",
                "The connection I want to change:",
                kind=FieldKind.TEXT,
                placeholder="FROM: ____________ TO: ____________",
            ),
            FieldSpec("howToChange", "HOW I'll change it:"),
            FieldSpec("systemImpact", "If I made this change, what might happen to the rest of my system?"),
            FieldSpec("keyLearning", "The most important thing I learned from my map:"),
            FieldSpec("readyToChange", "The one connection I'm ready to change:"),
            FieldSpec("whyThisChange", "Why this change could shift everything:"),
        ),
    )


def _goals() -> StepTemplate:
    return StepTemplate(
        step=Step.GOALS,
        title="Set Your Goal",
        fields=(
            FieldSpec("leveragePointGoal", "Your identified leverage point:", kind=FieldKind.TEXT, readonly=True),
            FieldSpec("goalStatement", "Your Goal Statement:"),
            FieldSpec(
                "realityCheck",
                "This goal is realistic, connected to my map, and truly mine",
                kind=FieldKind.CHECKBOX,
            ),
            FieldSpec("goalImpact", "How will achieving this goal impact your overall system?"),
            FieldSpec("successMetrics", "How will you know you've succeeded?"),
            FieldSpec("potentialObstacles", "What potential obstacles might arise, and how will you address them?"),
        ),
    )


def _roadmap() -> StepTemplate:
    return StepTemplate(
        step=Step.ROADMAP,
        title="Create Your Roadmap",
        fields=(
            FieldSpec("roadmapGoal", "Your Goal:", kind=FieldKind.TEXT, readonly=True),
            FieldSpec(
                "milestone1",
                "NOW - your tiny shift:",
                placeholder="What's one small thing you could change this week?",
            ),
            FieldSpec(
                "milestone2",
                "NEXT - your experiment:",
                placeholder="What boundary or routine would support your goal?",
            ),
            FieldSpec(
                "milestone3",
                "LATER - your bigger goal:",
                placeholder="What bigger change does your system map point toward?",
            ),
            FieldSpec("flexibilityPlan", "How will you build flexibility into your roadmap?"),
            FieldSpec("supportSystem", "Who or what is your support system for this journey?"),
        ),
    )


def _commitment() -> StepTemplate:
    return StepTemplate(
        step=Step.COMMITMENT,
        title="Anchor Your Commitment",
        fields=(
            FieldSpec("yourName", "Your Name:", kind=FieldKind.TEXT, placeholder="Type your name here"),
            FieldSpec("commitmentFoundation", "From your mapping work, what's the one insight that surprised you most?"),
            FieldSpec("patternToInterrupt", "What pattern or loop are you ready to interrupt?"),
            FieldSpec(
                "nowColumnImportant",
                "From your roadmap, what's the one thing in your NOW column that feels most important?",
            ),
            FieldSpec("whatToGain", "What will you gain by making this change?"),
            FieldSpec("commitmentText", "My Commitment:", placeholder="I commit to..."),
            FieldSpec("whenHard", "When this gets hard (and it will), I will remember that:"),
            FieldSpec("supportWho", "Who in your life will cheer you on without judgment?"),
            FieldSpec("supportEnvironment", "What environment or space helps you feel most like yourself?"),
            FieldSpec("whenStumble", "What will you do when you inevitably stumble?"),
            FieldSpec("reminderRitual", "What reminder or ritual will help you stay connected to your intention?"),
            FieldSpec("signatureDate", "Date:", kind=FieldKind.DATE),
            FieldSpec("oneWord", "One word that captures how this feels:", kind=FieldKind.TEXT),
            FieldSpec("finalReflection", "Final Reflection:"),
        ),
    )


TEMPLATE_BUILDERS: Dict[Step, Callable[[], StepTemplate]] = {
    Step.WELCOME: _welcome,
    Step.FOCUS: _focus,
    Step.INFLUENCES: _influences,
    Step.CONNECTIONS: _connections,
    Step.MAPPING: _mapping,
    Step.PATTERNS: _patterns,
    Step.GOALS: _goals,
    Step.ROADMAP: _roadmap,
    Step.COMMITMENT: _commitment,
}

_missing_templates = set(Step) - set(TEMPLATE_BUILDERS)
if _missing_templates:  # pragma: no cover - guards edits to the table above
    raise RuntimeError(f"Steps without a template: {sorted(step.value for step in _missing_templates)}")


def build_template(step: Step) -> StepTemplate:
    return TEMPLATE_BUILDERS[step]()


NAV_LABELS: Dict[Step, str] = {
    Step.WELCOME: "Welcome",
    Step.FOCUS: "Define Focus",
    Step.INFLUENCES: "Explore Influences",
    Step.CONNECTIONS: "Connect Dots",
    Step.MAPPING: "Map Connections",
    Step.PATTERNS: "Find Pattern",
    Step.GOALS: "Set Goal",
    Step.ROADMAP: "Create Roadmap",
    Step.COMMITMENT: "Anchor Commitment",
}

# Fields whose non-emptiness counts towards the progress ledger.
REQUIRED_FIELDS: Dict[Step, Tuple[str, ...]] = {
    Step.FOCUS: ("wantMore",),
    Step.INFLUENCES: ("energyGivers", "energyDrainers"),
    Step.CONNECTIONS: ("ahaReflection",),
    Step.PATTERNS: ("keyLearning",),
    Step.GOALS: ("goalStatement",),
    Step.ROADMAP: ("milestone1",),
    Step.COMMITMENT: ("commitmentText",),
}

# One answer per major step; drives the document completion percentage.
ANCHOR_FIELDS: Tuple[Tuple[Step, str], ...] = (
    (Step.FOCUS, "wantMore"),
    (Step.INFLUENCES, "energyGivers"),
    (Step.INFLUENCES, "energyDrainers"),
    (Step.CONNECTIONS, "ahaReflection"),
    (Step.PATTERNS, "keyLearning"),
    (Step.GOALS, "goalStatement"),
    (Step.COMMITMENT, "commitmentText"),
)

# Sections listed, in order, by the plain-text export.
EXPORT_SECTIONS: Tuple[Tuple[Step, str], ...] = (
    (Step.FOCUS, "Focus Area"),
    (Step.INFLUENCES, "Influences"),
    (Step.CONNECTIONS, "Connections"),
    (Step.PATTERNS, "Patterns"),
    (Step.GOALS, "Goals"),
    (Step.COMMITMENT, "Commitment"),
)


def required_fields_for(step: Step | str) -> Tuple[str, ...]:
    parsed = Step.parse(step)
    if parsed is None:
        return ()
    return REQUIRED_FIELDS.get(parsed, ())


def is_required_field(step: Step | str, field_id: str) -> bool:
    return field_id in required_fields_for(step)


def default_section(step: Step) -> Dict[str, Any]:
    """Return the empty answer mapping for ``step``."""
    return {spec.id: spec.empty_value() for spec in build_template(step).fields}


__all__ = [
    "ANCHOR_FIELDS",
    "EXPORT_SECTIONS",
    "FieldKind",
    "FieldSpec",
    "LIFE_AREAS",
    "LOOP_TYPES",
    "NAV_LABELS",
    "PATTERN_CARDS",
    "PLEDGE_NAME_PLACEHOLDER",
    "PLEDGE_TEMPLATE",
    "REQUIRED_FIELDS",
    "STEP_SEQUENCE",
    "Step",
    "StepTemplate",
    "TEMPLATE_BUILDERS",
    "build_template",
    "default_section",
    "is_required_field",
    "required_fields_for",
]
