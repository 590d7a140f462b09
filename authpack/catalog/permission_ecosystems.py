"""
Permission ecosystems: FCA permission code → pack template type plus the
policy, training and SMCR-role checklists that seed a new assessment.

``section_keys`` is not stored here; ``sync_ecosystems`` derives it from the
matching pack template so the two catalogs cannot drift.
"""

PERMISSION_ECOSYSTEMS = [
    {
        "code": "payments",
        "name": "Payment Services & E-Money",
        "description": (
            "Authorised Payment Institution or E-Money Institution under the PSRs 2017 / EMRs 2011, "
            "including safeguarding, PSD2 security and agent oversight."
        ),
        "pack_template_type": "payments-emi",
        "policy_templates": [
            "AML/CTF Policy",
            "Safeguarding Policy",
            "Complaints Handling Policy",
            "Information Security Policy",
            "Outsourcing Policy",
            "Business Continuity Plan",
            "Fraud Risk Management Policy",
        ],
        "training_requirements": ["aml-fundamentals", "kyc-fundamentals", "sanctions-training", "sars-training"],
        "smcr_roles": ["SMF16 Compliance Oversight", "SMF17 MLRO", "SMF3 Executive Director"],
        "typical_timeline_weeks": 16,
    },
    {
        "code": "consumer-credit",
        "name": "Consumer Credit",
        "description": (
            "Consumer credit lending, broking and debt activities under CONC, including affordability, "
            "forbearance and financial promotions."
        ),
        "pack_template_type": "consumer-credit",
        "policy_templates": [
            "Responsible Lending Policy",
            "Vulnerable Customers Policy",
            "Arrears & Forbearance Policy",
            "Financial Promotions Policy",
            "Complaints Handling Policy",
            "AML/CTF Policy",
        ],
        "training_requirements": ["aml-fundamentals", "kyc-fundamentals", "smcr-training"],
        "smcr_roles": ["SMF16 Compliance Oversight", "SMF17 MLRO", "SMF29 Limited Scope Function"],
        "typical_timeline_weeks": 14,
    },
    {
        "code": "investments",
        "name": "Investment Services",
        "description": (
            "Advice, arranging, dealing and portfolio management under MiFID and COBS, "
            "including client categorisation and CASS where client assets are held."
        ),
        "pack_template_type": "investment",
        "policy_templates": [
            "Conflicts of Interest Policy",
            "Best Execution Policy",
            "Suitability & Appropriateness Policy",
            "Client Assets (CASS) Policy",
            "AML/CTF Policy",
            "Complaints Handling Policy",
        ],
        "training_requirements": ["aml-fundamentals", "smcr-training", "peps-training"],
        "smcr_roles": [
            "SMF1 Chief Executive",
            "SMF16 Compliance Oversight",
            "SMF17 MLRO",
            "SMF24 Chief Operations",
        ],
        "typical_timeline_weeks": 20,
    },
    {
        "code": "insurance-distribution",
        "name": "Insurance Distribution",
        "description": "Insurance intermediation under ICOBS/IDD, including product governance and demands and needs.",
        "pack_template_type": "insurance-distribution",
        "policy_templates": [
            "Product Oversight & Governance Policy",
            "Complaints Handling Policy",
            "Conflicts of Interest Policy",
            "Claims Handling Policy",
        ],
        "training_requirements": ["aml-fundamentals", "smcr-training"],
        "smcr_roles": ["SMF16 Compliance Oversight", "SMF29 Limited Scope Function"],
        "typical_timeline_weeks": 12,
    },
    {
        "code": "crypto-registration",
        "name": "Cryptoasset Registration",
        "description": "MLR 2017 registration for cryptoasset exchange providers and custodian wallet providers.",
        "pack_template_type": "crypto-registration",
        "policy_templates": [
            "AML/CTF Policy",
            "Sanctions Screening Policy",
            "Travel Rule Procedure",
            "Information Security Policy",
            "Customer Risk Assessment Methodology",
        ],
        "training_requirements": [
            "aml-fundamentals", "kyc-fundamentals", "sanctions-training", "peps-training", "sars-training",
        ],
        "smcr_roles": ["MLRO", "Nominated Officer", "Beneficial Owner Approval"],
        "typical_timeline_weeks": 24,
    },
]


def get_ecosystem_definition(permission_code: str):
    for ecosystem in PERMISSION_ECOSYSTEMS:
        if ecosystem["code"] == permission_code:
            return ecosystem
    return None
