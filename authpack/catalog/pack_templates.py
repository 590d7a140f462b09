"""
Pack template catalog.

Every template is a list of section dicts:

    {"key", "title", "description", "prompts": [...], "evidence": [...]}

Prompts are generated from ``SECTION_OUTLINES``: a required ``narrative``
prompt, one required prompt per outline line, required ``controls`` and an
optional ``evidence-map``.
"""

import re

PACK_TYPE_LABELS = {
    "payments-emi": "Payments / EMI",
    "investment": "Investment Firm",
    "consumer-credit": "Consumer Credit",
    "insurance-distribution": "Insurance Distribution",
    "crypto-registration": "Crypto Registration",
}

SECTION_OUTLINES = {
    "executive-summary": ["Submission overview", "Regulatory scope", "Readiness summary"],
    "business-model": [
        "Market opportunity and customer need",
        "Value proposition",
        "Competitive positioning",
        "Distribution strategy and growth model",
        "Agent structure overview",
        "Strategic rationale and future approach",
    ],
    "product-scope": [
        "Regulatory permission framework",
        "Permission rationale",
        "Regulatory boundaries and operational constraints",
        "Compliance architecture and risk management",
    ],
    "governance": [
        "Ownership structure and corporate form",
        "Board composition and responsibilities",
        "Time allocation and commitment",
        "Management structure and operational organisation",
        "Decision-making framework and accountability",
        "Skills assessment and board competencies",
        "Decision authority matrix",
    ],
    "operational-resilience": [
        "Platform architecture and service delivery model",
        "Incident reporting policies and procedures",
        "Incident classification and initial assessment",
        "Reporting structure (4-hour initial, 3-day intermediate, 2-week final)",
        "Operational reporting framework",
    ],
    "risk-compliance": [
        "Risk identification and assessment methodology",
        "Control design and operating effectiveness",
    ],
    "customer-lifecycle": [
        "Customer onboarding journey and risk assessment",
        "Ongoing monitoring and relationship management",
    ],
    "product-architecture": [
        "Service design and operational model",
        "Payment processing and settlement mechanics",
        "FX risk approach",
        "Operational implementation",
        "Risk monitoring framework",
        "Governance and oversight",
        "Customer protection framework",
        "Continuous enhancement",
    ],
    "client-asset-protection": [
        "Client money identification and segregation",
        "Record-keeping and reconciliation procedures",
        "Oversight framework and governance",
        "Client money calculation and reporting",
        "Service level management and performance standards",
    ],
    "financials": ["Capital adequacy", "Stress testing and scenario analysis"],
    "wind-down": ["Wind-down execution and cost management"],
    "aml-ctf": [
        "Risk-based approach and threat assessment",
        "Customer due diligence and risk profiling",
        "B2B money remittance typologies and detection",
        "Transaction monitoring and alert management",
        "Suspicious activity reporting and regulatory engagement",
        "Training, culture, and continuous improvement",
        "Conduct risk framework",
    ],
    "regulatory-reporting": ["Reporting cadence, FCA engagement, and supervisory contacts"],
    "data-quality": ["Data lineage, validation controls, and exception handling"],
    "consumer-duty": [
        "Consumer Duty philosophy and B2B application",
        "Four outcomes compliance framework",
        "Products and services outcome",
        "Price and value outcome",
        "Consumer understanding outcome",
        "Consumer support outcome",
        "Outcome monitoring",
        "Complaints handling and rules",
    ],
    "compliance-monitoring": [
        "Risk-based monitoring approach",
        "Annual monitoring schedule",
        "Findings management and remediation",
    ],
    "threshold-conditions": [
        "Continuous assessment framework",
        "Location and physical presence requirements",
        "Supervision effectiveness and regulatory engagement",
        "Resource adequacy and operational sustainability",
        "Suitability and fitness",
        "Business model viability",
    ],
    "app-fraud": [
        "Real-time detection and intervention mechanisms",
        "Reimbursement framework and liability allocation",
    ],
    "operational-resilience-framework": [
        "Important business services identification",
        "Impact tolerance setting and validation",
    ],
    "mi-board-reporting": [
        "Risk indicator integration and predictive analytics",
        "Management information governance",
    ],
    "change-management": ["Regulatory change intake, assessment, and tracking"],
    "third-party-risk": [
        "Dependency mapping and criticality assessment",
        "Vendor performance management and assurance",
    ],
    "cyber-security": [
        "Threat landscape and defence architecture",
        "Incident response execution and recovery protocols",
        "Regulatory notification and stakeholder management",
        "Security testing programme",
    ],
    "sensitive-data": [
        "Data flow architecture and classification",
        "Access control and authorisation framework",
        "Monitoring and security controls",
        "Technical security measures",
        "Compliance and oversight",
    ],
    "security-policy": [
        "Risk assessment of payment services",
        "Security control framework",
        "Encryption standards and implementation",
        "Backup and recovery procedures",
        "Transaction analysis and suspicious activity detection",
    ],
    "vulnerability-management": [
        "Understanding business vulnerability",
        "Proactive identification mechanisms",
        "Outcome monitoring and continuous improvement",
        "Governance and quality assurance",
    ],
    "flow-of-funds": ["Transaction timeline and service standards"],
    "schedule-2": ["Schedule 2 mapping and confirmation of completeness"],
    "supporting-documents": ["Annex index and supporting references"],
    "appendix-technical-diagram": ["Technical architecture diagrams and data flow maps"],
}

_NARRATIVE_GUIDANCE = "Paste or draft the section narrative from the gold standard plan."


def to_prompt_key(value: str) -> str:
    """Slug used for outline prompt keys (max 40 chars)."""
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")[:40]


def _outline_prompts(outline):
    prompts = []
    for index, item in enumerate(outline or [], start=1):
        slug = to_prompt_key(item)
        prompts.append({
            "key": f"outline-{index}-{slug}" if slug else f"outline-{index}",
            "title": item,
            "guidance": "Summarize coverage or paste the relevant excerpt from the gold standard plan.",
            "input_type": "rich-text",
            "required": True,
            "weight": 1,
        })
    return prompts


def base_prompts(title: str, outline=None) -> list[dict]:
    guidance = _NARRATIVE_GUIDANCE
    if outline:
        guidance = f"{guidance} Include: {'; '.join(outline)}."
    return [
        {
            "key": "narrative",
            "title": f"{title} narrative",
            "guidance": guidance,
            "input_type": "rich-text",
            "required": True,
            "weight": 3,
        },
        *_outline_prompts(outline),
        {
            "key": "controls",
            "title": "Key controls and decisions",
            "guidance": "Summarize controls, owners, and decision points for this section.",
            "input_type": "rich-text",
            "required": True,
            "weight": 2,
        },
        {
            "key": "evidence-map",
            "title": "Evidence mapping",
            "guidance": "Link supporting evidence and annex references for this section.",
            "input_type": "rich-text",
            "required": False,
            "weight": 1,
        },
    ]


def _section(key, title, description, evidence=(), prompts=None):
    return {
        "key": key,
        "title": title,
        "description": description,
        "prompts": prompts if prompts is not None else base_prompts(title, SECTION_OUTLINES.get(key)),
        "evidence": [
            {"name": name, "description": desc, "is_mandatory": True}
            for name, desc in evidence
        ],
    }


def _addon(key, title, description, evidence):
    """Template-specific section without an outline."""
    return _section(key, title, description, evidence, prompts=base_prompts(title))


CORE_SPINE = [
    _section(
        "business-model",
        "Business Model and Market Analysis",
        "Target market, customer need, value proposition, and growth model.",
        [
            ("Market opportunity and customer need", "Target market, segment sizing, and customer pain points."),
            ("Value proposition and positioning", "Differentiation, pricing approach, and competitive positioning."),
            ("Distribution and growth strategy", "Distribution model, agent structure, and growth plan."),
        ],
    ),
    _section(
        "product-scope",
        "Regulatory Permissions and Operational Scope",
        "Permission framework, regulatory boundaries, and operational constraints.",
        [
            ("Permission framework and rationale", "Permissions mapped to activities and justification."),
            ("Regulatory boundaries and constraints", "In-scope vs out-of-scope activities."),
            ("Compliance architecture and risk management", "Control ownership and compliance structure."),
        ],
    ),
    _section(
        "governance",
        "Corporate Structure and Governance Framework",
        "Ownership, board composition, accountability framework, and decision authority.",
        [
            ("Ownership structure and corporate form", "Group structure, shareholding, and legal entities."),
            ("Board composition and responsibilities", "Board roles, committees, and oversight duties."),
            ("Management structure and time commitments", "Key management roles and allocation of time."),
            ("Decision authority matrix", "Decision rights and escalation structure."),
        ],
    ),
    _section(
        "risk-compliance",
        "Operational Risk Framework and Control Environment",
        "Risk identification methodology, control design, and operating effectiveness.",
        [
            ("Risk identification methodology", "Risk taxonomy, assessment approach, and ownership."),
            ("Control design and effectiveness", "Key controls mapped to risks and testing evidence."),
            ("Risk appetite and indicators", "Risk appetite statement and key indicators."),
        ],
    ),
    _section(
        "operational-resilience",
        "Technology Infrastructure and Operational Resilience",
        "Platform architecture, incident reporting, and operational reporting controls.",
        [
            ("Platform architecture and service delivery", "Architecture diagrams and service model."),
            ("Incident reporting procedures", "Incident classification, escalation, and reporting."),
            ("Operational reporting framework", "Operational reporting cadence and governance."),
        ],
    ),
    _section(
        "financials",
        "Financial Projections and Business Economics",
        "Financial model, capital adequacy, and stress testing.",
        [
            ("Financial projections and assumptions", "Three-year projections with key assumptions."),
            ("Capital adequacy analysis", "Capital buffer and liquidity coverage."),
            ("Stress testing and scenarios", "Downside cases and sensitivity analysis."),
        ],
    ),
    _section(
        "wind-down",
        "Wind-Down Planning and Resolution Strategy",
        "Exit plan, execution triggers, and cost management.",
        [
            ("Wind-down execution plan", "Orderly wind-down strategy and triggers."),
            ("Cost and timing model", "Funding and timeline for wind-down."),
            ("Customer protection plan", "Customer communications and service continuity."),
        ],
    ),
]

PAYMENTS_ADDONS = [
    _section(
        "executive-summary",
        "Executive Summary",
        "High-level summary of the submission narrative, scope, and readiness.",
        [("Executive summary draft", "Board-approved summary and positioning statement.")],
    ),
    _section(
        "regulatory-reporting",
        "Regulatory Reporting and Supervisory Engagement",
        "Regulatory reporting cadence, FCA engagement approach, and reporting governance.",
        [
            ("Regulatory reporting calendar", "Reporting obligations, cadence, and ownership."),
            ("Supervisory engagement plan", "Engagement approach, contacts, and escalation routes."),
        ],
    ),
    _section(
        "data-quality",
        "Data Quality and Validation Framework",
        "Data lineage, validation controls, and quality assurance for regulatory reporting.",
        [
            ("Data quality framework", "Quality controls, ownership, and monitoring."),
            ("Validation rules and exceptions", "Validation logic, exceptions, and remediation."),
        ],
    ),
    _section(
        "customer-lifecycle",
        "Customer Lifecycle Management",
        "Onboarding journey, risk assessment, and ongoing monitoring.",
        [
            ("Customer journey map", "Onboarding flow and customer touchpoints."),
            ("CDD/EDD procedures", "Customer due diligence and risk profiling."),
            ("Ongoing monitoring plan", "Ongoing monitoring and relationship management."),
        ],
    ),
    _section(
        "product-architecture",
        "Product Architecture and Fund Flow Management",
        "Service design, payment processing, settlement mechanics, and fund flow governance.",
        [
            ("Service design and operating model", "Service design and operational responsibilities."),
            ("Payment processing and settlement mechanics", "Processing flow and settlement design."),
            ("Fund flow governance", "Controls for fund movement and oversight."),
        ],
    ),
    _section(
        "client-asset-protection",
        "Client Asset Protection - Principle 10 Compliance",
        "Client money segregation, reconciliation, governance, and reporting.",
        [
            ("Client money identification and segregation", "Segregation policy and account structure."),
            ("Reconciliation procedures", "Record-keeping and reconciliation evidence."),
            ("Safeguarding oversight framework", "Governance and reporting for client money."),
        ],
    ),
    _section(
        "aml-ctf",
        "Anti-Money Laundering and Counter-Terrorist Financing Framework",
        "Risk-based approach, monitoring, SARs, training, and conduct risk.",
        [
            ("AML/CTF policy", "Risk assessment, monitoring, and SAR workflow."),
            ("Transaction monitoring and alerts", "Rules, thresholds, and alert handling."),
            ("SAR workflow and training records", "Regulatory engagement and training evidence."),
        ],
    ),
    _section(
        "consumer-duty",
        "Consumer Duty Implementation and Customer Outcomes",
        "Customer outcomes, monitoring, and complaints handling.",
        [
            ("Consumer duty framework", "Outcomes and governance model."),
            ("Outcome monitoring", "Monitoring indicators and review cadence."),
            ("Complaints handling", "Complaints process and root-cause analysis."),
        ],
    ),
    _section(
        "compliance-monitoring",
        "Compliance Monitoring Programme",
        "Risk-based monitoring schedule and remediation tracking.",
        [
            ("Monitoring plan", "Annual monitoring schedule and scope."),
            ("Findings and remediation tracker", "Findings register and remediation status."),
        ],
    ),
    _section(
        "threshold-conditions",
        "Threshold Conditions and Ongoing Compliance",
        "Continuous assessment of resources, location, governance, and sustainability.",
        [
            ("Threshold conditions mapping", "Evidence mapped to FCA thresholds."),
            ("Resource adequacy assessment", "Resources, capital, and operational sustainability."),
            ("Business model viability assessment", "Viability analysis and assumptions."),
        ],
    ),
    _section(
        "app-fraud",
        "APP Fraud Prevention and Reimbursement",
        "Detection, intervention, reimbursement framework, and governance.",
        [
            ("Detection and intervention controls", "Detection, intervention, and escalation."),
            ("Reimbursement framework", "Liability allocation and reimbursement process."),
        ],
    ),
    _section(
        "operational-resilience-framework",
        "Operational Resilience Framework",
        "Important business services, impact tolerances, and resilience testing.",
        [
            ("Important business services register", "IBS identification and impact tolerances."),
            ("Resilience testing plan", "Scenario tests and remediation actions."),
        ],
    ),
    _section(
        "mi-board-reporting",
        "Management Information and Board Reporting Framework",
        "MI governance, risk indicators, and board reporting cadence.",
        [
            ("MI reporting pack", "Board reporting dashboard and cadence."),
            ("Board reporting cadence", "Schedule and governance for MI review."),
        ],
    ),
    _section(
        "change-management",
        "Change Management and Regulatory Horizon Scanning",
        "Regulatory change workflow, governance, and tracking.",
        [
            ("Regulatory change log", "Change intake, assessment, and tracking."),
            ("Horizon scanning workflow", "Regulatory monitoring and ownership."),
        ],
    ),
    _section(
        "third-party-risk",
        "Third-Party Risk Management and Vendor Governance",
        "Vendor governance, criticality assessments, and oversight.",
        [
            ("Vendor register", "Critical vendors and risk assessments."),
            ("Criticality assessment", "Dependency mapping and tiering evidence."),
            ("Ongoing assurance plan", "Performance monitoring and oversight."),
        ],
    ),
    _section(
        "cyber-security",
        "Cyber Security Incident Response and Digital Resilience",
        "Threat landscape, incident response, and recovery protocol.",
        [
            ("Cyber incident response plan", "Playbooks and escalation routes."),
            ("Security testing programme", "Testing cadence and remediation actions."),
            ("Regulatory notification workflow", "Notification triggers and stakeholder updates."),
        ],
    ),
    _section(
        "sensitive-data",
        "Sensitive Payment Data Management",
        "Data classification, access controls, and monitoring.",
        [
            ("Data flow architecture and classification", "Data flows, classification, and ownership."),
            ("Access control framework", "Authorisation, access reviews, and monitoring."),
            ("Monitoring and security controls", "Monitoring coverage and alerts."),
        ],
    ),
    _section(
        "security-policy",
        "Security Policy and Risk Assessment Framework",
        "Security controls, encryption standards, and backups.",
        [
            ("Security policy and control framework", "Security standards and governance."),
            ("Encryption standards and implementation", "Encryption approach and key management."),
            ("Backup and recovery procedures", "Backup cadence and recovery testing."),
        ],
    ),
    _section(
        "vulnerability-management",
        "Vulnerability Management Programme",
        "Identification, remediation, and assurance cadence.",
        [
            ("Vulnerability management plan", "Scanning, remediation, and reporting."),
            ("Remediation tracking", "Remediation log and closure evidence."),
        ],
    ),
    _section(
        "flow-of-funds",
        "Flow of Funds",
        "Transaction timeline, service standards, and reconciliation.",
        [
            ("Transaction timeline", "Transaction lifecycle and settlement."),
            ("Service standards and reconciliation", "Service levels and reconciliation evidence."),
        ],
    ),
    _section(
        "schedule-2",
        "Schedule 2 Compliance Mapping",
        "FCA Schedule 2 mapping and completeness confirmation.",
        [
            ("Schedule 2 mapping workbook", "Mapping of requirements to evidence."),
            ("Completeness confirmation", "Confirmation of completeness and sign-off."),
        ],
    ),
    _section(
        "supporting-documents",
        "Supporting Documents",
        "Reference materials, annex list, and supporting evidence.",
        [
            ("Annex register", "Annex index and cross references."),
            ("Supporting document index", "Supporting documents and ownership."),
        ],
    ),
    _section(
        "appendix-technical-diagram",
        "Appendix - Technical Diagram",
        "Technical architecture diagrams and integration maps.",
        [
            ("Technical architecture diagram", "System architecture and data flow."),
            ("Integration and data flow maps", "Integration touchpoints and dependencies."),
        ],
    ),
]

PAYMENTS_SECTION_ORDER = [
    "executive-summary",
    "business-model",
    "product-scope",
    "governance",
    "operational-resilience",
    "risk-compliance",
    "customer-lifecycle",
    "product-architecture",
    "client-asset-protection",
    "financials",
    "wind-down",
    "aml-ctf",
    "regulatory-reporting",
    "data-quality",
    "consumer-duty",
    "compliance-monitoring",
    "threshold-conditions",
    "app-fraud",
    "operational-resilience-framework",
    "mi-board-reporting",
    "change-management",
    "third-party-risk",
    "cyber-security",
    "sensitive-data",
    "security-policy",
    "vulnerability-management",
    "flow-of-funds",
    "schedule-2",
    "supporting-documents",
    "appendix-technical-diagram",
]


def _payments_sections():
    by_key = {section["key"]: section for section in PAYMENTS_ADDONS + CORE_SPINE}
    return [by_key[key] for key in PAYMENTS_SECTION_ORDER if key in by_key]


PACK_TEMPLATES = [
    {
        "type": "payments-emi",
        "name": "Payments and EMI Authorization Pack",
        "description": (
            "Workspace aligned to FCA expectations for payment services and e-money institutions."
        ),
        "sections": _payments_sections(),
    },
    {
        "type": "investment",
        "name": "Investment Firm Authorization Pack",
        "description": "Core spine plus investment-specific modules (suitability, conflicts, best execution).",
        "sections": CORE_SPINE + [
            _addon(
                "suitability", "Suitability and Appropriateness",
                "Suitability framework, target market, and ongoing monitoring.",
                [
                    ("Suitability policy", "Target market and suitability tests."),
                    ("Client suitability records", "Sample client file evidence."),
                ],
            ),
            _addon(
                "conflicts", "Conflicts of Interest",
                "Conflicts register and mitigation strategy.",
                [("Conflicts register", "Identified conflicts and controls.")],
            ),
            _addon(
                "best-execution", "Best Execution",
                "Execution policy and monitoring evidence.",
                [("Best execution policy", "Monitoring and oversight evidence.")],
            ),
        ],
    },
    {
        "type": "consumer-credit",
        "name": "Consumer Credit Authorization Pack",
        "description": "Core spine plus affordability, forbearance, and vulnerable customer modules.",
        "sections": CORE_SPINE + [
            _addon(
                "affordability", "Affordability and Creditworthiness",
                "Affordability assessment methodology and governance.",
                [("Affordability policy", "Assessment criteria and monitoring.")],
            ),
            _addon(
                "forbearance", "Forbearance and Arrears",
                "Forbearance policy, escalation, and controls.",
                [("Forbearance procedures", "Arrears handling evidence.")],
            ),
            _addon(
                "vulnerability", "Vulnerable Customer Framework",
                "Identification, support, and outcomes monitoring.",
                [("Vulnerable customer policy", "Support framework and outcomes.")],
            ),
        ],
    },
    {
        "type": "insurance-distribution",
        "name": "Insurance Distribution Authorization Pack",
        "description": "Core spine plus PROD, distribution oversight, and appointed representative controls.",
        "sections": CORE_SPINE + [
            _addon(
                "prod", "PROD and Product Governance",
                "Product oversight and approval process.",
                [("PROD policy", "Product governance and target market evidence.")],
            ),
            _addon(
                "distribution-oversight", "Distribution Oversight",
                "Distributor controls and oversight metrics.",
                [("Distribution oversight plan", "Monitoring and reporting evidence.")],
            ),
            _addon(
                "ar-controls", "Appointed Representative Controls",
                "AR onboarding, supervision, and reporting.",
                [("AR oversight framework", "Due diligence and monitoring evidence.")],
            ),
        ],
    },
    {
        "type": "crypto-registration",
        "name": "Cryptoasset Registration Pack",
        "description": "Core spine with AML/CTF emphasis and cryptoasset specific controls.",
        "sections": CORE_SPINE + [
            _addon(
                "crypto-aml", "AML/CTF Controls for Cryptoassets",
                "Risk-based AML controls for cryptoasset activities.",
                [("Crypto AML policy", "Source of funds and blockchain analytics.")],
            ),
            _addon(
                "wallet-controls", "Wallet and Transaction Controls",
                "Wallet governance, transaction monitoring, and screening.",
                [("Wallet governance controls", "Key management and monitoring.")],
            ),
        ],
    },
]


def get_template_definition(template_type: str):
    for template in PACK_TEMPLATES:
        if template["type"] == template_type:
            return template
    return None
