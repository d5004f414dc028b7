"""
Fixed Taglish copy sent to buyers.

Every user-facing line lives here so flows stay free of literals and the
tone can be reviewed in one place. Generated copy (hooks, nudge phrasing)
is built from the prompts in system_prompts.py instead.
"""

from salesbot.config import settings

_biz = settings.business

# ---- Greeting ---- #

GREET_NEW = (
    f"Hi! 👋 I’m your {_biz.name} consultant. Ako na bahala mag-match ng best unit "
    "para sa’yo, no more endless scrolling. Let’s find your car, fast."
)
GREET_RETURNING = (
    "Welcome back! 👋 Itutuloy natin kung saan tayo huli, or type **restart** "
    "kung gusto mong mag-start over."
)

# ---- Qualifying questions, keyed by slot name ---- #

ASK_SLOT: dict[str, str] = {
    "plan": "Cash or financing ang plan mo?",
    "budget": "Cash budget range? (e.g., 450k–600k)",
    "location": "Saan location mo? (city/province)",
    "body_type": "Anong body type hanap mo? (sedan/suv/mpv/van/pickup, or ‘any’)",
    "transmission": "Auto o manual? (pwede ‘any’)",
}

SUMMARY_INTRO = "Copy. Ito yung hahanapin ko for you:"
SUMMARY_LABELS: dict[str, str] = {
    "plan": "Payment",
    "budget": "Budget",
    "location": "Location",
    "body_type": "Body type",
    "transmission": "Transmission",
}
SEARCHING = (
    "Saglit, iche-check ko ang live inventory para ma-offer ko agad "
    "yung best 2 units for you. 🔎"
)

# ---- Offers ---- #

NO_MATCHES = (
    "Walang exact na pasok sa filters mo, pero pwede kitang i-widen ng konti "
    "(budget o body type). Type **widen** kung okay."
)
PICK_ONE = "Type **1** to proceed sa unit na ito, or type **others** para alternatives."
PICK_TWO = "Pili ka: type **1** or **2**. Kung gusto mo pang iba, type **others**."
PICK_ANY = "Type **1**, **2**, **3**, or **4** to pick. (Order based on messages above)"
NO_BACKUP = "Walang naka-prepare na back-up. Gusto mo bang i-widen natin? Type **widen**."
WIDEN_ASK = "Sige, i-widen ko ng konti. Ano mas gusto mong i-relax: **body type** or **budget**?"
PICK_DELAYED = "Medyo na-delay. Paki-type ulit yung number."
PICK_FALLBACK = "Type **1** or **2**, or **others** para ibang options."
NICE_CHOICE = "Nice choice! 🔥 Sending full photos…"

# ---- Schedule and contact ---- #

ASK_SCHEDULE_TODAY = (
    "Available ka ba today for quick viewing? If not, sabihin mo lang kung kailan ka free."
)
ASK_SCHEDULE_NEXT_DAY = (
    "Medyo late na for same-day viewing. What day/time works for you tomorrow "
    "(or next available day)?"
)
SCHEDULE_NOTED = "Noted. I’ll pencil you in: {when}."
ASK_MOBILE = "Para ma-lock ko yung schedule, paki-send ng mobile number mo (PH format)."
ASK_FULL_NAME = "Noted. Paki-send ng full name mo rin (first & last)."
ADDRESS_REVEAL = (
    "Complete address of the unit:\n{address}\n\n"
    "See you on your schedule! If may changes, message mo lang ako."
)
ADDRESS_PENDING = (
    "Nakuha ko na details mo. Iche-check ko ang exact address and "
    "i-text ka namin for confirmation."
)
ADDRESS_GATE = (
    "Ibibigay ko ang full address once ma-lock natin ang viewing schedule + "
    "contact details mo, para ma-prepare agad ang unit pagdating mo. 🙏"
)

# ---- Financing ---- #

ASK_INCOME = (
    "Para ma-guide kita sa requirements: ano source of income mo? "
    "(employed / business / OFW or seaman / pension / other)"
)
ASK_TERM = "Ilang years mo gustong hulugan? Reply **2**, **3**, or **4**."
TERM_NOTED = "Got it, {term} years. ✅"
DOCS_CHECKLIST_INTRO = "Okay. ✅ Since you’re **{label}**, here’s the usual checklist:"
DOCS_CHECKLIST_OUTRO = (
    "Pwede mong i-upload dito (clear photos okay) para ma-pre-approve ka agad."
)
DOCS_REMIND = (
    "Send mo lang dito yung docs (photo or file) kapag ready na. "
    "I-review namin agad para mabilis ang approval. 👍"
)
DOCS_RECEIVED = (
    "Received! ✅ I-forward ko na sa credit team for pre-approval. "
    "Update kita agad once may result."
)

INCOME_LABELS: dict[str, str] = {
    "employed": "Employed",
    "business": "Self-employed / Business owner",
    "ofw": "OFW/Seafarer",
    "pension": "Pensioner",
    "other": "Applicant",
}

DOCS_CHECKLISTS: dict[str, list[str]] = {
    "employed": [
        "Valid IDs (2 government IDs)",
        "COE (with salary) or Latest Contract",
        "Payslips (last 3 months)",
        "Proof of billing (address)",
        "Bank statement (3–6 months, if available)",
    ],
    "business": [
        "Valid IDs (2 government IDs)",
        "DTI/SEC & Mayor’s Permit",
        "Latest ITR / Audited FS (if any)",
        "Bank statement (6 months)",
        "Proof of billing (business/home)",
    ],
    "ofw": [
        "Valid IDs (2 government IDs)",
        "Passport & Seaman’s Book (if seafarer)",
        "OEC/Contract/POEA docs",
        "Proof of remittance (3–6 months)",
        "Proof of billing (home)",
    ],
    "pension": [
        "Valid IDs (2 government IDs)",
        "Pension slip or SSS/GSIS pension statement",
        "Bank statement where pension is credited (3–6 months)",
        "Proof of billing (home)",
    ],
    "other": [
        "Valid IDs",
        "Proof of income",
        "Proof of billing",
    ],
}

# ---- Terminal phases and failures ---- #

DONE_CASH = (
    "All set na tayo sa viewing mo. ✅ Message mo lang ako kung may changes, "
    "or type **restart** para maghanap ulit."
)
DONE_FIN = (
    "Nasa credit review na ang docs mo. ✅ I-update kita agad, "
    "or type **restart** para maghanap ulit."
)
TRY_AGAIN = "Pasensya, nagka-aberya sa system. Paki-try ulit in a minute. 🙏"

# ---- Interrupt resume bridge ---- #

RESUME_PICK = "Balik tayo: " + PICK_TWO

# ---- Nudges ---- #

NUDGE_QUALIFYING = [
    "Quick lang: cash or financing plan mo? Para ma-match kita agad.",
    "Saan location mo (city/province)? Iche-check ko pinakamalapit na units.",
    "Body type mo? sedan / SUV / MPV / van / pickup, or ‘any’.",
    "Auto or manual prefer mo? (pwede rin ‘any’)",
    "Budget range? (cash SRP or cash-out kung financing) para tumama ang options.",
]
NUDGE_SCHEDULE = [
    "Hawak ko pa yung unit na pinili mo. Kailan ka free for viewing? 🚗",
    "Para hindi maunahan, i-lock na natin ang viewing slot mo. Anong araw ka available?",
    "Ready na ang unit for viewing. Send mo lang preferred day/time mo.",
]
NUDGE_DOCS = [
    "Reminder lang: send mo dito yung basic docs para ma-pre-approve ka agad. 👍",
    "Kahit clear photos ok (IDs + income proof), i-review namin agad.",
    "While securing your slot, puwede mong i-send dito ang IDs at basic docs para mabilisan ang approval.",
]
