"""
Training content registry (read-only reference data).

Module records carry metadata and lesson/scenario outlines only; lesson
text lives in the content service. Lesson ids are the targets that
``EntityLink`` rows point at with ``to_type="training"``.
"""


def _module(module_id, title, description, category, duration, difficulty, personas,
            prerequisites, lessons, scenarios=(), assessment_questions=5):
    return {
        "id": module_id,
        "title": title,
        "description": description,
        "category": category,
        "duration": duration,
        "difficulty": difficulty,
        "target_personas": list(personas),
        "prerequisite_modules": list(prerequisites),
        "lessons": [{"id": lid, "title": ltitle, "module_id": module_id} for lid, ltitle in lessons],
        "practice_scenarios": [{"id": sid, "title": stitle} for sid, stitle in scenarios],
        "assessment_question_count": assessment_questions,
    }


TRAINING_MODULES = {
    "aml-fundamentals": _module(
        "aml-fundamentals",
        "Anti-Money Laundering (AML) Fundamentals",
        "Master the foundations of AML compliance, understand the three stages of money laundering, "
        "and learn your critical role in protecting the financial system",
        "financial-crime-prevention", 20, "beginner",
        ["compliance-officer", "relationship-manager", "operations-staff", "customer-service"],
        [],
        [
            ("aml-foundations", "The Money Laundering Lifecycle"),
            ("aml-regulatory-framework", "Regulatory Framework and Firm Obligations"),
            ("aml-risk-based-approach", "Risk Based Approach and Customer Profiling"),
            ("aml-detection-escalation", "Detection, Monitoring, and Escalation"),
            ("aml-governance-culture", "Governance, Roles, and AML Culture"),
        ],
    ),
    "kyc-fundamentals": _module(
        "kyc-fundamentals",
        "Know Your Customer (KYC) & Customer Due Diligence",
        "Master the fundamentals of customer identification, verification, and ongoing due diligence "
        "to prevent financial crime.",
        "financial-crime-prevention", 15, "intermediate",
        ["compliance-officer", "customer-service", "relationship-manager"],
        ["aml-fundamentals"],
        [
            ("kyc-pillars", "The Three Pillars of Customer Due Diligence"),
            ("risk-assessment", "Risk-Based Approach to Customer Assessment"),
            ("ongoing-monitoring", "Ongoing Monitoring and Relationship Management"),
        ],
        [
            ("corporate-kyc-scenario", "Complex Corporate Structure Assessment"),
            ("ongoing-monitoring-scenario", "Suspicious Transaction Pattern Detection"),
        ],
    ),
    "sanctions-training": _module(
        "sanctions-training",
        "Sanctions & Financial Crime Prevention",
        "Understand international sanctions regimes, screening procedures, and compliance obligations "
        "to prevent sanctions violations.",
        "financial-crime-prevention", 12, "intermediate",
        ["compliance-officer", "operations-staff", "relationship-manager"],
        ["aml-fundamentals"],
        [
            ("sanctions-fundamentals", "Understanding Sanctions Regimes"),
            ("screening-procedures", "Sanctions Screening and Detection"),
            ("compliance-procedures", "Sanctions Compliance and Escalation"),
            ("sanctions-evasion-typologies", "Evasion Typologies and Red Flags"),
            ("sanctions-governance", "Governance, MI, and Accountability"),
        ],
        [
            ("screening-alert-scenario", "Complex Sanctions Screening Alert"),
            ("evasion-detection-scenario", "Sanctions Evasion Pattern Recognition"),
        ],
    ),
    "peps-training": _module(
        "peps-training",
        "Politically Exposed Persons (PEPs) Identification",
        "Master the identification, classification, and enhanced due diligence requirements for "
        "Politically Exposed Persons.",
        "financial-crime-prevention", 10, "intermediate",
        ["compliance-officer", "relationship-manager", "kyc-specialist"],
        ["aml-fundamentals", "kyc-fundamentals"],
        [
            ("pep-categories", "Understanding PEP Categories and Definitions"),
            ("edd-procedures", "Enhanced Due Diligence for PEPs"),
            ("identification-techniques", "PEP Identification Techniques and Tools"),
            ("ongoing-monitoring-exit", "Ongoing Monitoring, Reviews and Exit Decisions"),
            ("pep-governance-approvals", "Governance, Approvals and Documentation Standards"),
        ],
        [
            ("complex-pep-scenario", "Complex Family Structure PEP Identification"),
            ("hidden-pep-scenario", "Concealed PEP Identity Detection"),
        ],
    ),
    "sars-training": _module(
        "sars-training",
        "Suspicious Activity Reporting (SARs)",
        "Master the identification, investigation, and reporting of suspicious activity to protect "
        "against money laundering and terrorist financing.",
        "financial-crime-prevention", 15, "advanced",
        ["compliance-officer", "mlro", "senior-manager"],
        ["aml-fundamentals", "kyc-fundamentals"],
        [
            ("legal-framework", "Legal Framework and Obligations"),
            ("identification-investigation", "Identifying and Investigating Suspicious Activity"),
            ("sar-process", "SAR Submission Process and Requirements"),
            ("confidentiality-management", "Confidentiality and Tipping-Off Prevention"),
        ],
        [
            ("cash-structuring-scenario", "Complex Cash Structuring Investigation"),
            ("customer-questioning-scenario", "Managing Customer Inquiries During Investigation"),
        ],
    ),
    "smcr-training": _module(
        "smcr-training",
        "Senior Managers & Certification Regime (SM&CR)",
        "Understand the SM&CR framework, individual accountability, fitness and propriety requirements, "
        "and conduct rules for financial services.",
        "regulatory-compliance", 20, "advanced",
        ["senior-manager", "certified-person", "hr-professional"],
        [],
        [
            ("smcr-framework", "SM&CR Framework and Objectives"),
            ("senior-management-functions", "Senior Management Functions and Responsibilities"),
            ("handover-notifications", "Handover, Regulatory References and Notifications"),
            ("certification-regime", "Certification Regime and Fitness Assessment"),
            ("conduct-rules", "Conduct Rules and Accountability Standards"),
        ],
        [
            ("reasonable-steps-scenario", "The System Outage Investigation"),
            ("certification-withdrawal-scenario", "The Failing Advisor"),
        ],
    ),
}

TRAINING_CATEGORIES = {
    "financial-crime-prevention": {
        "name": "Financial Crime Prevention",
        "description": "Anti-money laundering, sanctions, and financial crime compliance",
    },
    "regulatory-compliance": {
        "name": "Regulatory Compliance",
        "description": "FCA, PRA and regulatory framework compliance",
    },
    "customer-protection": {
        "name": "Customer Protection",
        "description": "Consumer duty and customer treatment requirements",
    },
    "operational-risk": {
        "name": "Operational Risk",
        "description": "Operational resilience and risk management",
    },
}

PERSONA_RECOMMENDATIONS = {
    "compliance-officer": [
        "aml-fundamentals", "kyc-fundamentals", "sanctions-training", "peps-training", "sars-training",
    ],
    "senior-manager": ["smcr-training", "aml-fundamentals", "sars-training"],
    "mlro": ["sars-training", "aml-fundamentals", "kyc-fundamentals", "sanctions-training", "peps-training"],
    "relationship-manager": ["kyc-fundamentals", "peps-training", "sanctions-training"],
    "operations-staff": ["sanctions-training", "aml-fundamentals"],
    "customer-service": ["kyc-fundamentals", "aml-fundamentals"],
    "kyc-specialist": ["kyc-fundamentals", "peps-training"],
    "certified-person": ["smcr-training"],
    "hr-professional": ["smcr-training"],
}

LEARNING_PATHWAYS = {
    "essential-aml-pathway": {
        "id": "essential-aml-pathway",
        "title": "Essential AML & Financial Crime Prevention",
        "description": (
            "Comprehensive pathway covering all aspects of anti-money laundering and financial crime prevention"
        ),
        "category": "mandatory",
        "estimated_duration": 75,
        "modules": ["aml-fundamentals", "kyc-fundamentals", "sanctions-training", "peps-training", "sars-training"],
        "target_roles": ["compliance-officer", "mlro", "relationship-manager", "kyc-specialist"],
        "certification": True,
    },
    "senior-manager-pathway": {
        "id": "senior-manager-pathway",
        "title": "Senior Manager Accountability & Governance",
        "description": (
            "Leadership pathway for senior managers covering accountability, conduct, and governance requirements"
        ),
        "category": "mandatory",
        "estimated_duration": 50,
        "modules": ["smcr-training", "aml-fundamentals", "sars-training"],
        "target_roles": ["senior-manager", "certified-person"],
        "certification": True,
    },
    "customer-facing-pathway": {
        "id": "customer-facing-pathway",
        "title": "Customer-Facing Compliance Essentials",
        "description": "Essential compliance training for all customer-facing roles",
        "category": "mandatory",
        "estimated_duration": 45,
        "modules": ["kyc-fundamentals", "peps-training", "aml-fundamentals"],
        "target_roles": ["relationship-manager", "customer-service"],
        "certification": True,
    },
}

FEATURED_MODULE_POINTS = {
    "aml-fundamentals": 200,
    "kyc-fundamentals": 150,
    "sanctions-training": 120,
    "peps-training": 100,
    "sars-training": 180,
    "smcr-training": 250,
}


def get_training_module(module_id):
    return TRAINING_MODULES.get(module_id)


def get_all_training_modules():
    return list(TRAINING_MODULES.values())


def get_modules_by_category(category):
    return [module for module in TRAINING_MODULES.values() if module["category"] == category]


def get_modules_by_difficulty(difficulty):
    return [module for module in TRAINING_MODULES.values() if module["difficulty"] == difficulty]


def get_modules_by_persona(persona):
    return [module for module in TRAINING_MODULES.values() if persona in module["target_personas"]]


def get_module_prerequisites(module_id):
    """Prerequisite module records; unknown ids are skipped."""
    module = TRAINING_MODULES.get(module_id)
    if not module:
        return []
    return [TRAINING_MODULES[pid] for pid in module["prerequisite_modules"] if pid in TRAINING_MODULES]


def get_recommended_modules(persona):
    return [TRAINING_MODULES[mid] for mid in PERSONA_RECOMMENDATIONS.get(persona, []) if mid in TRAINING_MODULES]


def get_featured_modules():
    featured = []
    for module_id, points in FEATURED_MODULE_POINTS.items():
        module = TRAINING_MODULES[module_id]
        featured.append({
            "id": module_id,
            "title": module["title"],
            "duration": module["duration"],
            "difficulty": module["difficulty"],
            "points": points,
        })
    return featured


def find_lesson(lesson_id):
    """Return the lesson record for ``lesson_id`` across all modules, or None."""
    for module in TRAINING_MODULES.values():
        for lesson in module["lessons"]:
            if lesson["id"] == lesson_id:
                return lesson
    return None
