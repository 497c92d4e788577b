"""Intensity-keyed phrase banks for conviction responses, one bank per rhetorical slot."""

from ..models import ConvictionIntensity, ConvictionScenario

GENTLE = ConvictionIntensity.GENTLE
MEDIUM = ConvictionIntensity.MEDIUM
FIRM = ConvictionIntensity.FIRM

PHRASE_BANK = {
    "acknowledge": {
        GENTLE: [
            "Acha, main samajh gaya aap kya keh rahe hain.",
            "Haan, I can see why you'd think about it that way.",
            "Bilkul, aapki soch mein logic hai.",
        ],
        MEDIUM: [
            "Theek hai, interesting perspective hai, lekin",
            "Valid point yaar, but",
            "I hear you, aur phir bhi",
        ],
        FIRM: [
            "I get it completely, but",
            "Samajh gaya, lekin honestly",
            "Okay, but let me be straight with you:",
        ],
    },
    "alternative": {
        GENTLE: [
            "Kya hoga agar hum ek aur tareeka try karein?",
            "Maybe a slightly different approach would feel easier.",
            "Ek chhota sa suggestion hai:",
        ],
        MEDIUM: [
            "Mera suggestion yeh hoga ke",
            "Actually, a better approach here is",
            "Yaar, mujhe lagta hai behtar yeh rahega ke",
        ],
        FIRM: [
            "I strongly recommend a different approach:",
            "Is method ko seriously consider karo:",
            "This approach will work much better:",
        ],
    },
    "reasoning": {
        GENTLE: [
            "Is se confusion kam ho sakta hai.",
            "This might make things click faster.",
            "Yeh tareeka time bacha sakta hai.",
        ],
        MEDIUM: [
            "Long term mein yeh zyada effective hai.",
            "It builds understanding that lasts beyond the exam.",
            "Is tarah time aur energy dono bachte hain.",
        ],
        FIRM: [
            "This is how the concept actually works, and the evidence is clear.",
            "Yeh proven method hai, results zaroor better honge.",
            "Getting this right now saves a lot of trouble later.",
        ],
    },
    "persuasive_nudge": {
        GENTLE: [
            "Agar comfortable lage toh ek dafa try kar ke dekhein.",
            "No pressure, just something to think about.",
            "Dekh lein yeh helpful lagta hai ya nahi.",
        ],
        MEDIUM: [
            "Ek baar try karo, mujhe yaqeen hai fayda hoga.",
            "Trust me on this one.",
            "Give it one honest attempt and see the difference.",
        ],
        FIRM: [
            "I really want you to try this.",
            "Main insist karunga ke yeh try karo.",
            "Please take this seriously, it matters.",
        ],
    },
    "encouragement": {
        GENTLE: [
            "Mushkil lagta hai, but aap kar sakte hain.",
            "Step by step chalte hain, koi jaldi nahi.",
            "It's okay to find this hard, everyone does at first.",
        ],
        MEDIUM: [
            "Difficult hai, impossible nahi.",
            "You've handled hard things before, this is one more.",
            "Yeh challenge hai, lekin aap handle kar sakte hain.",
        ],
        FIRM: [
            "You are more capable than you think, seriously.",
            "Main aap par believe karta hun, don't give up.",
            "You just need the right approach, not more talent.",
        ],
    },
    "empower_choice": {
        GENTLE: [
            "Lekin choice bilkul aapki hai.",
            "Ultimately, you know your situation best.",
            "Final decision aapka, main bas suggest kar raha hun.",
        ],
        MEDIUM: [
            "Decision aapka hai, but isay consider zaroor karna.",
            "Your call, though I'd recommend it.",
            "Aap decide karo, bas yeh option dhyan mein rakhna.",
        ],
        FIRM: [
            "It's your decision, but I'm confident this is the better path.",
            "Choice aapki, lekin please isay seriously lein.",
            "You decide, but honestly, give this a real try.",
        ],
    },
}

# scenarios whose nudge slot is drawn from the encouragement bank
SUPPORTIVE_SCENARIOS = frozenset({
    ConvictionScenario.DEAD_END_PATH,
    ConvictionScenario.NEGATIVE_SELF_TALK,
    ConvictionScenario.PERFECTIONISM_PARALYSIS,
})

ALTERNATIVE_APPROACHES = {
    ConvictionScenario.FACTUAL_ERROR: "Correct the misconception calmly and show the evidence",
    ConvictionScenario.INEFFICIENT_APPROACH: "Pair memorization with understanding and active practice",
    ConvictionScenario.CONTRADICTS_GOALS: "Reconnect the plan with the stated goal and agree on a realistic first step",
    ConvictionScenario.POTENTIALLY_HARMFUL: "Steer toward a safe, sustainable study routine",
    ConvictionScenario.DEAD_END_PATH: "Encourage persistence with a different strategy and smaller steps",
    ConvictionScenario.BETTER_ALTERNATIVE: "Switch to a different explanation style and break the topic into smaller steps",
    ConvictionScenario.LEARNING_MISCONCEPTION: "Surface the misconception with a counter-example, then rebuild the idea",
    ConvictionScenario.SKIPPING_FUNDAMENTALS: "Show how the fundamentals unlock the advanced topic",
    ConvictionScenario.PERFECTIONISM_PARALYSIS: "Normalize mistakes as part of learning and set a 'good enough' first target",
    ConvictionScenario.NEGATIVE_SELF_TALK: "Reframe the self-assessment and point to concrete progress",
}

TONES = {
    GENTLE: "warm_supportive",
    MEDIUM: "supportive_but_firm",
    FIRM: "confident_direct",
}
