"""
Bilingual (English + Roman Urdu) pattern tables for the message classifier

Weights are additive within one intent: a message that hits two frustration
phrases is more clearly frustrated than one that hits a single phrase.
English patterns use word boundaries throughout.
"""

import re

from ..models import Intent, UserState
from ..patterns import PatternSet, word_regex

# --- intents (declaration order breaks score ties) ---

_FRUSTRATION = [
    (r"\b(?:dimagh|dimaag)\s*kharab\b", 0.9),
    (r"\bsamajh\s*nahi\s*aa\s*raha\b", 0.8),
    (r"\bnahi\s*samajh\b", 0.8),
    (r"\bmushkil\s*hai\b", 0.7),
    (r"\byaar\s*problem\b", 0.6),
    (r"\bconfused\s*hun\b", 0.7),
    (r"\bdifficult\s*lagta\b", 0.6),
    (r"\bheadache\s*ho\s*raha\b", 0.8),
    (r"\bbore\s*ho\s*gaya\b", 0.5),
    (r"\bkya\s*bakwas\b", 0.7),
    (r"\bpagal\s*ho\s*gaya\b", 0.8),
    (r"\bstress\s*aa\s*raha\b", 0.7),
    (r"\bstuck\s*ho\s*gaya\b", 0.8),
    (r"\bsar\s*ho\s*gaya\b", 0.7),
    (r"\bfrustrat(?:ed|ing|ion)\b", 0.7),
    (r"\bstruggling\b", 0.6),
    (r"\bfed\s+up\b", 0.7),
]

_HELP_SEEKING = [
    (r"\bhelp\b.*\b(?:need|with|problem)\b|\bneed\b.*\bhelp\b", 0.8),
    (r"\bhelp\s*karo\b", 0.9),
    (r"\bsamjhao\s*na\b", 0.8),
    (r"\bguide\s*karo\b", 0.8),
    (r"\bbata\s*do\b", 0.7),
    (r"\bmushkil\s*mein\s*hun\b", 0.8),
    (r"\bstuck\s*hun\b", 0.9),
    (r"\bmadad\s*chahiye\b", 0.9),
    (r"\bmadad\s*karna\b", 0.75),
    (r"\bexplain\s*karo\b", 0.8),
    (r"\bclear\s*karo\b", 0.7),
    (r"\bi'?m\s+stuck\b|\bstuck\s+on\b", 0.7),
]

_CURIOSITY = [
    (r"\bkya\s*hai\s*ye\b", 0.8),
    (r"\bbatao\s*na\b", 0.7),
    (r"\binteresting\s*lagta\b", 0.8),
    (r"\btry\s*karna\s*chahta\b", 0.7),
    (r"\bdekh\s*te\s*hain\b|\bdekhte\s*hain\b", 0.6),
    (r"\bkaise\s*hota\b", 0.8),
    (r"\bmaza\s*aa\s*raha\b", 0.7),
    (r"\bcool\s*hai\b", 0.6),
    (r"\bacha\s*concept\b", 0.8),
    (r"\bnaya\s*cheez\b", 0.7),
    (r"\bexperiment\s*karte\b", 0.8),
    (r"\bwhat\s+if\b", 0.7),
    (r"\bi\s+wonder\b", 0.6),
    (r"\bjust\s+exploring\b|\bcurious\s+about\b", 0.6),
]

_GREETING = [
    (r"\bas+alam", 0.9),
    (r"\bsala+m\b", 0.8),
    (r"\bhello\b", 0.7),
    (r"\bhi\b", 0.6),
    (r"\bhey\b", 0.6),
    (r"\bkya\s*haal\b", 0.8),
    (r"\bkais[ei]\s*ho\b", 0.8),
    (r"\bsup\b", 0.6),
    (r"\bwhat'?s\s*up\b", 0.6),
    (r"\bhow\s+are\s+you\b", 0.7),
    (r"\bgood\s+(?:morning|afternoon|evening)\b", 0.7),
    (r"\bkya\s*kar\s*rahe\b", 0.7),
]

_DIRECT_TASK = [
    (r"\bsolve\s*karo\b", 0.8),
    (r"\banswer\s*do\b", 0.8),
    (r"\bbatao\b(?!\s*na\b)", 0.7),
    (r"\bcalculate\s*karo\b", 0.8),
    (r"\b(?:find|search|create|make|write)\s*karo\b", 0.7),
    (r"\bexplain\s+this\b", 0.8),
    (r"\bshow\s+me\b", 0.8),
    (r"\bcalculate\b", 0.8),
    (r"\bsolve\b", 0.7),
    (r"\b(?:just\s+)?(?:give|tell)\s+me\s+the\s+answer\b", 0.8),
    (r"\b(?:convert|translate)\b", 0.6),
]

_BRAINSTORMING = [
    (r"\bideas\s*do\b", 0.8),
    (r"\bsuggestions\s*chahiye\b", 0.8),
    (r"\boptions\s*kya\s*hain\b", 0.8),
    (r"\balternatives\b", 0.7),
    (r"\bdifferent\s+ways\b", 0.7),
    (r"\bcreative\s+solutions?\b", 0.8),
    (r"\bthink\s*karte\s*hain\b", 0.7),
    (r"\bbrainstorm", 0.9),
    (r"\bpossibilities\b", 0.7),
    (r"\bideas?\b", 0.6),
    (r"\bsuggestions?\b", 0.6),
    (r"\bsolutions\b", 0.5),
]

_EMOTIONAL = [
    (r"\bfeel\s*karta\s*hun\b", 0.8),
    (r"\blagta\s*hai\b", 0.6),
    (r"\b(?:emotional|happy|sad|excited|worried|proud|disappointed|motivated)\s*hun\b", 0.8),
    (r"\bi(?:'m|\s+am)?\s+feeling\b|\bi\s+feel\b", 0.7),
    (r"\b(?:happy|sad|lonely|upset|depressed|worried)\b", 0.5),
]

_CHALLENGING = [
    (r"\byaqeen\s*nahi\b", 0.8),
    (r"\bsure\s*nahi\b", 0.8),
    (r"\bdoubt\s*hai\b", 0.8),
    (r"\breally\?", 0.7),
    (r"\bsach\s*mein\b", 0.7),
    (r"\b(?:prove|convince)\s*karo\b", 0.8),
    (r"\bevidence\s*do\b", 0.8),
    (r"\bgalat\s*lagta\b", 0.7),
    (r"\bdisagree\b", 0.8),
    (r"\bquestion\s*hai\b", 0.6),
    (r"\bare\s+you\s+sure\b", 0.8),
    (r"\bprove\s+it\b", 0.8),
    (r"\bi\s+don'?t\s+(?:believe|think\s+so)\b", 0.7),
    (r"\b(?:that'?s|you'?re)\s+wrong\b", 0.7),
]

_CONFUSION = [
    (r"\bsamajh\s*nahi\s*aa?ya\b", 0.8),
    (r"\bconfuse\w*\s*hun\b", 0.8),
    (r"\bclear\s*nahi\b", 0.7),
    (r"\bmushkil\b", 0.7),
    (r"\bcomplicated\s*lagta\b", 0.8),
    (r"\bmix\s*up\s*ho\s*gaya\b", 0.8),
    (r"\blost\s*hun\b", 0.8),
    (r"\bkya\s*matlab\b", 0.7),
    (r"\bexplain\s+again\b", 0.8),
    (r"\bconfus(?:ed|ing)\b", 0.7),
    (r"\bdon'?t\s+(?:understand|get\s+it)\b", 0.7),
    (r"\bi'?m\s+lost\b", 0.7),
    (r"\bwhat\s+do\s+you\s+mean\b", 0.6),
    (r"\bsamajh\s*nahi\b|\bnahi\s*samajh\b", 0.7),
    (r"\bunclear\b", 0.6),
]

# one confusion signal for the classifier state, learning phases, stuck
# detection and the conviction history trigger
CONFUSION_PATTERNS = PatternSet(_CONFUSION)

_LEARNING = [
    (r"\bexplain\b(?!\s*(?:karo|this|again)\b)", 0.6),
    (r"\bhow\s+(?:does|do|to|is|can)\b", 0.6),
    (r"\bwhy\s+(?:does|do|is|are)\b", 0.6),
    (r"\bwhat\s+(?:is|are)\b", 0.5),
    (r"\bteach\s+me\b|\bwant\s+to\s+learn\b", 0.7),
    (r"\bconcept\b|\bdefinition\b|\bdifference\s+between\b", 0.5),
    (r"\bsamjhana\b|\bsikhao\b", 0.7),
]

_TESTING = [
    (r"^\s*(?:test|testing)[\s.!?]*$", 0.8),
    (r"\btest(?:ing)?\s+(?:message|msg)\b", 0.8),
    (r"\bare\s+you\s+(?:a\s+bot|an?\s+ai|real|human)\b", 0.7),
    (r"\b(?:asdf|qwerty)\w*", 0.8),
]

_EVENT_SHARING = [
    (r"\bexam\s*hua\b", 0.8),
    (r"\btest\s*diya\b", 0.8),
    (r"\binterview\s*tha\b", 0.8),
    (r"\bpresentation\s*kiya\b", 0.8),
    (r"\bbirthday\s*hai\b", 0.7),
    (r"\bshaadi\s*mein\s*gaya\b", 0.7),
    (r"\bparty\s*mein\s*tha\b", 0.7),
    (r"\bfestival\s*manaya\b", 0.7),
    (r"\b(?:holiday|trip)\s*par\s*(?:gaya|tha)\b", 0.7),
    (r"\bvacation\s*kiya\b", 0.7),
    (r"\bmeeting\s*thi\b", 0.7),
    (r"\bclass\s*attend\s*kiya\b", 0.8),
    (r"\blecture\s*suna\b", 0.8),
    (r"\bworkshop\s*gaya\b", 0.8),
    (r"\bi\s+(?:had|have)\s+(?:an?|my)\s+(?:exam|test|interview|presentation|quiz)\b", 0.7),
    (r"\b(?:went\s+to|attended)\b", 0.6),
]

_PERSONAL_UPDATE = [
    (r"\bnew\s*job\s*mila\b", 0.8),
    (r"\bpromotion\s*hua\b", 0.8),
    (r"\bghar\s*shift\s*kiya\b", 0.7),
    (r"\bcourse\s*join\s*kiya\b", 0.8),
    (r"\bhobby\s*start\s*kiya\b", 0.7),
    (r"\bskill\s*seekh\s*raha\b", 0.8),
    (r"\bproject\s*kar\s*raha\b", 0.8),
    (r"\bpadh\s*raha\s*hun\b", 0.8),
    (r"\bpractice\s*kar\s*raha\b", 0.8),
    (r"\bwork\s*kar\s*raha\b", 0.7),
    (r"\bi\s+(?:just\s+)?(?:started|joined|moved)\b", 0.7),
    (r"\bnew\s+job\b", 0.7),
]

_ACHIEVEMENT = [
    (r"\bpass\s*ho\s*gaya\b", 0.9),
    (r"\bclear\s*kar\s*diya\b", 0.9),
    (r"\bjeet\s*gaya\b", 0.8),
    (r"\b(?:achieve|complete|finish|accomplish)\s*kiya\b", 0.8),
    (r"\bsuccessful\s*raha\b", 0.8),
    (r"\b(?:certificate|award)\s*mila\b", 0.9),
    (r"\bprize\s*jeeta\b", 0.9),
    (r"\brecognition\s*mila\b", 0.8),
    (r"\bi\s+(?:just\s+)?(?:passed|won|cleared|aced)\b", 0.8),
    (r"\bgot\s+(?:an?\s+)?(?:a\+|award|prize|scholarship|first\s+position)", 0.8),
]

_CHALLENGES = [
    (r"\bproblem\s*aa\s*rahi\b", 0.8),
    (r"\bissue\s*hai\b", 0.7),
    (r"\bdifficulty\s*face\s*kar\s*raha\b", 0.8),
    (r"\bstruggle\s*kar\s*raha\b", 0.8),
    (r"\bhard\s*time\s*aa\s*raha\b", 0.8),
    (r"\btough\s+situation\b", 0.8),
    (r"\bhandle\s*nahi\s*kar\s*pa\s*raha\b", 0.8),
    (r"\bmanage\s*nahi\s*ho\s*raha\b", 0.8),
    (r"\bhaving\s+(?:a\s+)?(?:hard|tough)\s+time\b", 0.8),
    (r"\bstruggling\s+with\b", 0.7),
    (r"\bcan'?t\s+(?:manage|handle|cope)\b", 0.7),
]

_MEMORY_REFERENCE = [
    (r"\bremember\s*karo\b", 0.8),
    (r"\byaad\s*hai\b", 0.8),
    (r"\bpichli\s*baar\b", 0.8),
    (r"\blast\s+time\b", 0.8),
    (r"\bjab\s*maine\s*kaha\s*tha\b", 0.8),
    (r"\bwo\s*waqt\s*jab\b", 0.8),
    (r"\bpreviously\b", 0.7),
    (r"\bearlier\s*maine\b", 0.8),
    (r"\bpast\s*mein\b", 0.7),
    (r"\bhistory\s*mein\b", 0.7),
    (r"\bremember\s+(?:when|that)\b", 0.8),
]

_PREFERENCE = [
    (r"\bmujhe\s*pasand\b", 0.8),
    (r"\b(?:like|prefer|dislike|avoid|hate|love)\s*karta\s*hun\b", 0.8),
    (r"\bfavou?rite\s*hai\b", 0.8),
    (r"\bnahi\s*pasand\b", 0.8),
    (r"\bespecially\s+like\b", 0.8),
    (r"\bparticularly\s+enjoy\b", 0.8),
    (r"\bcan'?t\s+stand\b", 0.8),
    (r"\bi\s+(?:really\s+)?(?:prefer|love|enjoy)\b", 0.6),
    (r"\bmy\s+favou?rite\b", 0.7),
    (r"\bi\s+(?:hate|dislike)\b", 0.7),
]

INTENT_PATTERNS = [
    (Intent.FRUSTRATED_SEEKING_HELP, PatternSet(_FRUSTRATION + _HELP_SEEKING)),
    (Intent.GREETING, PatternSet(_GREETING)),
    (Intent.DIRECT_TASK_ORIENTED, PatternSet(_DIRECT_TASK)),
    (Intent.BRAINSTORMING_COLLABORATIVE, PatternSet(_BRAINSTORMING)),
    (Intent.EMOTIONAL_SHARING, PatternSet(_EMOTIONAL)),
    (Intent.CHALLENGING_SKEPTICAL, PatternSet(_CHALLENGING)),
    (Intent.VAGUE_UNCLEAR, CONFUSION_PATTERNS),
    (Intent.EXPLORATORY_PLAYFUL, PatternSet(_CURIOSITY)),
    (Intent.LEARNING_FOCUSED, PatternSet(_LEARNING)),
    (Intent.TESTING_SYSTEM, PatternSet(_TESTING)),
    (Intent.EVENT_SHARING, PatternSet(_EVENT_SHARING)),
    (Intent.PERSONAL_UPDATE, PatternSet(_PERSONAL_UPDATE)),
    (Intent.ACHIEVEMENT_ANNOUNCEMENT, PatternSet(_ACHIEVEMENT)),
    (Intent.CHALLENGE_DESCRIPTION, PatternSet(_CHALLENGES)),
    (Intent.MEMORY_REFERENCE, PatternSet(_MEMORY_REFERENCE)),
    (Intent.PREFERENCE_EXPRESSION, PatternSet(_PREFERENCE)),
]

# --- user states, checked in priority order ---

_EXCITEMENT = [
    (r"\bexcited\b|\bexcitement\b", 0.8),
    (r"\bcan'?t\s+wait\b", 0.8),
    (r"\b(?:wow+|yay+|woo+hoo+)\b", 0.6),
    (r"\bbohot\s+khush\b|\bbahut\s+khush\b", 0.8),
]

_ENTHUSIASM = [
    (r"!", 0.3),
    (r"\b(?:awesome|great|cool|amazing|zabardast|kamaal|fantastic|love\s+it)\b", 0.6),
]

STATE_PATTERNS = [
    (UserState.FRUSTRATED, PatternSet(_FRUSTRATION + [(r"\bannoy(?:ed|ing)\b|\bugh+\b", 0.6)])),
    (UserState.CONFUSED, CONFUSION_PATTERNS),
    (UserState.PROUD, PatternSet(_ACHIEVEMENT)),
    (UserState.NOSTALGIC, PatternSet(_MEMORY_REFERENCE)),
    (UserState.ANXIOUS, PatternSet(_CHALLENGES + [(r"\b(?:anxious|nervous|worried|tension)\b", 0.6)])),
]

EXCITEMENT_PATTERNS = PatternSet(_EXCITEMENT)
ENTHUSIASM_PATTERNS = PatternSet(_ENTHUSIASM)

EXCITED_CONFIDENCE = 0.8
ENGAGED_CONFIDENCE = 0.7
REPEATED_QUESTION_CONFIDENCE = 0.7

# --- sentiment lexicon (whole words) ---

POSITIVE_WORDS = word_regex([
    "good", "great", "excellent", "awesome", "perfect", "love", "happy", "excited",
    "amazing", "wonderful", "nice", "glad", "thanks", "thank you", "helpful",
    "maza", "acha", "achha", "behtar", "zabardast", "kamaal", "shukriya", "khush",
])
NEGATIVE_WORDS = word_regex([
    "bad", "terrible", "awful", "hate", "dislike", "sad", "frustrated", "frustrating",
    "angry", "boring", "worst", "upset", "stressed", "confused", "difficult", "useless",
    "bakwas", "bura", "ganda", "mushkil", "pareshan", "udaas",
])

# --- formality ---

CASUAL_WORDS = word_regex([
    "yaar", "bhai", "dude", "bro", "tum", "yr", "na", "bhi", "hun",
    "mein", "karo", "kar", "hai", "ho", "lol",
])
FORMAL_WORDS = word_regex([
    "aap", "sir", "madam", "please", "thank you", "sahib", "janaab",
    "could you", "would you", "may i", "kindly",
])
MIXED_REGISTER_WORDS = word_regex(["yaar", "bhai", "bahut", "bohot", "hun", "mein", "karo", "kya", "nahi", "hai"])
SALUTATION_PATTERN = re.compile(r"^\s*(?:dear|respected|hono(?:u)?rable)\b", re.IGNORECASE)
VALEDICTION_PATTERN = re.compile(r"\b(?:regards|sincerely|respectfully|yours\s+truly)\b[\s\W]*$", re.IGNORECASE)

CASUAL_WEIGHT = 0.5
FORMAL_WEIGHT = 0.4
CASUAL_CATEGORY_PENALTY = 0.5
MIXED_REGISTER_PENALTY = 0.6
SALUTATION_BONUS = 0.5
COMPLETE_WORDS_BONUS = 0.1
FORMAL_THRESHOLD = 0.3
CASUAL_THRESHOLD = -0.1

# --- mood micro-patterns: (regex, weight) ---

MICRO_PATTERNS = {
    "emoji": (re.compile("[\U0001F300-\U0001FAFF☀-➿]"), 0.3),
    "all_caps": (re.compile(r"\b[A-Z]{3,}\b"), 0.6),
    "repeated_punctuation": (re.compile(r"[!?]{2,}"), 0.5),
    "prolonged_vowels": (re.compile(r"([aeiou])\1{2,}", re.IGNORECASE), 0.4),
    "typing_repeats": (re.compile(r"([b-df-hj-np-tv-z])\1{2,}", re.IGNORECASE), 0.3),
}
MOOD_HIGH = 0.7
MOOD_MEDIUM = 0.3

# seconds between consecutive turns
SILENCE_PROLONGED = 300
SILENCE_THOUGHTFUL = 60
SILENCE_RAPID = 10

# --- learning phases, shared with the flow analyzer ---

LEARNING_PHASE_PATTERNS = [
    ("confusion", CONFUSION_PATTERNS),
    ("application", PatternSet([
        (r"\blet\s+me\s+try\b|\bi\s+(?:tried|solved|applied|built|wrote)\b", 1.0),
        (r"\bkar\s*liya\b|\bbana\s*liya\b|\btry\s*kiya\b", 1.0),
        (r"\bpractice\b|\bapply\b", 0.6),
    ])),
    ("understanding", PatternSet([
        (r"\bi\s+see\b|\bgot\s+it\b|\bmakes\s+sense\b|\bthat\s+helps\b", 1.0),
        (r"\bi\s+(?:now\s+)?understand\b|\bunderstood\b|\bclear\s+now\b", 1.0),
        (r"\bsamajh\s*(?:aa\s*)?gaya\b|\bsamajh\s*aa\s*gayi\b", 1.0),
    ])),
]

CONTINUITY_MARKERS = word_regex([
    "also", "and", "but", "however", "furthermore", "then", "so",
    "aur", "lekin", "phir", "toh", "as i said",
])

STUCK_PATTERNS = PatternSet([
    (r"\bstill\s+(?:confused|stuck|lost|don'?t\s+(?:understand|get\s+it))\b", 1.0),
    (r"\babhi\s*bhi\b|\bphir\s*se\b", 0.8),
    (r"\bsame\s+(?:problem|issue|error|mistake)\b", 0.9),
    (r"\b(?:not|isn'?t|still\s+not)\s+working\b", 0.8),
    (r"\bagain\b", 0.4),
])

# valence used for emotional progression
STATE_VALENCE = {
    UserState.FRUSTRATED: -2, UserState.CONFUSED: -1, UserState.OVERWHELMED: -2,
    UserState.ANXIOUS: -1, UserState.DISAPPOINTED: -1, UserState.DISINTERESTED: -1,
    UserState.NEUTRAL: 0, UserState.CURIOUS: 0, UserState.NOSTALGIC: 0,
    UserState.ENGAGED: 1, UserState.SATISFIED: 1, UserState.CONFIDENT: 1, UserState.GRATEFUL: 1,
    UserState.EXCITED: 2, UserState.PROUD: 2,
}

STATE_TRANSITIONS = {
    (UserState.FRUSTRATED, UserState.SATISFIED): "frustration_resolved",
    (UserState.CONFUSED, UserState.CONFIDENT): "understanding_gained",
    (UserState.CURIOUS, UserState.ENGAGED): "curiosity_deepened",
    (UserState.ENGAGED, UserState.SATISFIED): "learning_completed",
}

# cheap routing for quick_classify
QUICK_ROUTES = [
    (Intent.GREETING, re.compile(r"^\s*(?:hi|hello|hey|salam|assalam\w*)\b", re.IGNORECASE)),
    (Intent.FRUSTRATED_SEEKING_HELP, re.compile(r"\bhelp\b|\bmadad\b|\bstuck\b", re.IGNORECASE)),
    (Intent.DIRECT_TASK_ORIENTED, re.compile(r"\b(?:calculate|solve|answer)\b", re.IGNORECASE)),
    (Intent.VAGUE_UNCLEAR, re.compile(r"\bconfus\w*|\bsamajh\s*nahi\b", re.IGNORECASE)),
]

INTERROGATIVE = re.compile(
    r"\?|\b(?:what|why|how|when|where|who|which|kya|kyun|kyon|kaise|kab|kahan|kaun)\b",
    re.IGNORECASE,
)
