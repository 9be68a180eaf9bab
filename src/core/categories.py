from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict


class CategoryConfig(BaseModel):
    """
    Declarative category definition.
    """
    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    focus: str
    queries: Dict[str, Tuple[str, ...]] = {}

    def terms_for(self, source_type: str) -> Tuple[str, ...]:
        """Query terms configured for one source type (empty when none)."""
        return self.queries.get(source_type, ())


OPENCLAW = CategoryConfig(
    key="openclaw",
    name="OpenClaw",
    focus="OpenClaw AI platform: agent framework, skills, deployment, community updates",
    queries={
        "x": ('"openclaw" OR "open claw" OR @openclawai -is:retweet lang:en',),
        "reddit": ("openclaw", "ArtificialIntelligence", "LocalLLaMA", "ChatGPT"),
        "hackernews": ("openclaw", "open claw", "ai agent"),
        "producthunt": ("artificial-intelligence",),
    },
)

BIOTECH = CategoryConfig(
    key="biotech",
    name="Biotech",
    focus="Biotechnology: gene editing, drug discovery, clinical trials, FDA, therapeutics, diagnostics",
    queries={
        "x": (
            "CRISPR OR gene therapy OR mRNA OR FDA approval OR clinical trial -is:retweet lang:en",
            "drug discovery OR gene editing OR cell therapy OR biotech -is:retweet lang:en",
        ),
        "reddit": ("biotech", "genomics", "labrats", "bioinformatics"),
        "hackernews": (
            "biotech", "crispr", "gene therapy", "mrna",
            "fda", "clinical trial", "drug discovery", "genomics",
        ),
        "producthunt": ("medical",),
    },
)

NEUROTECH = CategoryConfig(
    key="neurotech",
    name="Neurotech",
    focus="Neurotechnology: brain-computer interfaces, neural implants, neuralink, EEG, brain mapping",
    queries={
        "x": (
            "neuralink OR brain-computer interface OR BCI OR neural implant -is:retweet lang:en",
            "neurostimulation OR EEG OR brain mapping OR connectome -is:retweet lang:en",
        ),
        "reddit": ("neurotechnology", "neuralink", "neuroscience", "BCI"),
        "hackernews": (
            "neuralink", "brain computer interface", "bci", "neural implant",
            "neuroprosthetic", "eeg", "brain machine",
        ),
    },
)

INTELLIGENCE = CategoryConfig(
    key="intelligence",
    name="Intelligence",
    focus="Intelligence and cognition: cognitive enhancement, nootropics, brain training, IQ research, neuroplasticity",
    queries={
        "x": (
            "cognitive enhancement OR nootropics OR IQ research OR fluid intelligence -is:retweet lang:en",
            "neuroplasticity OR brain training OR cognitive science -is:retweet lang:en",
        ),
        "reddit": ("cognitivescience", "nootropics", "neuropsychology", "intelligence"),
        "hackernews": (
            "cognitive", "intelligence", "nootropics",
            "neuroplasticity", "brain training", "iq",
        ),
    },
)

GENERAL = CategoryConfig(
    key="general",
    name="General Tech",
    focus="General technology: AI/ML, startups, open source, software, major tech news",
    queries={
        "x": (
            "AI agent OR autonomous AI OR open source AI OR LLM OR GPT -is:retweet lang:en",
            "startup funding OR YC OR Series A OR tech launch -is:retweet lang:en",
        ),
        "reddit": ("technology", "programming", "machinelearning", "artificial"),
        "hackernews": ("ai", "llm", "gpt", "startup", "open source", "machine learning"),
        "producthunt": ("artificial-intelligence", "developer-tools"),
    },
)

HRV = CategoryConfig(
    key="hrv",
    name="Heart Rate Variability",
    focus=(
        "Heart Rate Variability: HRV science, biofeedback, wearables (WHOOP, Oura), "
        "recovery, stress management, autonomic health"
    ),
    queries={
        "x": (
            "heart rate variability OR HRV OR vagal tone OR autonomic -is:retweet lang:en",
            "HRV training OR HRV biofeedback OR WHOOP OR Oura -is:retweet lang:en",
        ),
        "reddit": ("hrv", "quantifiedself", "biohacking", "whoop", "ouraring", "Fitness", "health"),
        "hackernews": ("heart rate variability", "hrv", "vagal tone", "autonomic", "biofeedback"),
        "producthunt": ("health-fitness",),
    },
)


DEFAULT_CATEGORIES = {
    category.key: category
    for category in (OPENCLAW, BIOTECH, NEUROTECH, INTELLIGENCE, GENERAL, HRV)
}
