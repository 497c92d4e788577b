"""
Curated lexicons for entity and register-marker extraction

Vernacular entries are romanized (Roman Urdu) as typed in chat. Words that
collide with common English words ("main", "mat", "correct", "nope") are
left out of the vernacular lists on purpose so English-only text is never
flagged as mixed register.
"""

NAMES = [
    "Ahmad", "Ali", "Hassan", "Hussain", "Muhammad", "Ahmed", "Usman", "Omar",
    "Asad", "Fatima", "Aisha", "Zainab", "Khadija", "Maryam", "Sana", "Ayesha",
    "Rabia", "Bilal", "Tariq", "Imran", "Kashif", "Saad", "Hamza", "Umar",
    "Faisal", "Saba", "Hina", "Nadia", "Samina", "Farah", "Uzma", "Shazia",
    "Rubina",
]

CITIES = [
    "Karachi", "Lahore", "Islamabad", "Rawalpindi", "Faisalabad", "Multan",
    "Peshawar", "Quetta", "Sialkot", "Gujranwala", "Hyderabad", "Sargodha",
    "Bahawalpur", "Sukkur", "Larkana", "Abbottabad", "Mardan", "Mingora",
    "Dera Ghazi Khan",
]

# everyday locations, reported lower-case
LOCATIONS = ["home", "office", "library", "classroom", "hostel", "campus", "ghar", "canteen"]

# canonical subject -> surface keywords
SUBJECT_FAMILIES = {
    "mathematics": [
        "math", "maths", "mathematics", "algebra", "geometry", "calculus",
        "trigonometry", "arithmetic", "statistics", "equation", "equations", "riyazi",
    ],
    "physics": ["physics", "mechanics", "thermodynamics", "optics"],
    "chemistry": ["chemistry", "organic chemistry"],
    "biology": ["biology", "botany", "zoology", "genetics"],
    "science": ["science", "sciences"],
    "programming": [
        "programming", "coding", "code", "software", "computer science",
        "python", "javascript", "java", "algorithm", "algorithms", "data structures",
    ],
    "history": ["history", "tareekh"],
    "geography": ["geography"],
    "literature": ["literature", "poetry", "novel", "novels", "adab"],
    "english": ["english", "grammar"],
    "urdu": ["urdu"],
    "economics": ["economics", "accounting", "business studies"],
    "islamiat": ["islamiat"],
    "pakistan studies": ["pakistan studies"],
}

# matched case-insensitively
INSTITUTION_WORDS = ["University", "College", "School", "Academy", "Institute"]
# acronyms are matched case-sensitively ("FAST" the university, not "fast")
INSTITUTION_ACRONYMS = ["LUMS", "NUST", "IBA", "UET", "FAST", "COMSATS", "GIKI", "PIEAS", "NED"]
INSTITUTION_NAMES = ["Aga Khan", "Punjab University", "Karachi University", "Beaconhouse", "City School"]

TIME_EXPRESSIONS = [
    "today", "tomorrow", "yesterday", "tonight", "this morning", "this evening",
    "next week", "last week", "this week", "next month", "last month", "weekend",
    "aaj", "kal", "parson", "subah", "shaam", "raat",
]

EMOTION_WORDS = [
    "happy", "sad", "angry", "excited", "worried", "anxious", "nervous",
    "stressed", "tired", "bored", "proud", "scared", "confused", "frustrated",
    "khush", "udaas", "pareshan", "gussa",
]

EVENT_WORDS = [
    "exam", "exams", "test", "quiz", "assignment", "project", "presentation",
    "interview", "deadline", "result", "results", "admission", "competition",
    "wedding", "shaadi", "birthday", "eid", "imtihan", "viva",
]

# register markers by category
VERNACULAR_MARKERS = {
    "casual": ["yaar", "yr", "bhai", "na", "bhi", "tou", "hai na", "qsm sy"],
    "emphasis": ["bilkul", "ekdum", "poora", "bara", "bohot", "bahut", "zyada"],
    "question": ["kya", "kyun", "kyon", "kaise", "kab", "kahan", "kaun"],
    "affirmative": ["han", "haan", "theek", "acha", "achha", "sahi"],
    "negative": ["nahi", "nahin", "galat"],
}

# grammatical glue words that only occur in romanized vernacular
VERNACULAR_FUNCTION_WORDS = [
    "hai", "hain", "mein", "se", "ka", "ki", "ke", "ho", "hun", "hoon",
    "raha", "rahi", "rahe", "karta", "karti", "karte", "karo", "kar",
    "chahiye", "chahta", "chahti", "lagta", "lagti", "gaya", "gayi", "tha", "thi",
    "aur", "yeh", "woh", "kuch", "mujhe", "tum", "aap", "hum", "maza",
]
