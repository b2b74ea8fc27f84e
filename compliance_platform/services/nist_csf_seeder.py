"""
Service for seeding the NIST CSF v1.1 reference catalog.
"""
import logging
from sqlalchemy.orm import Session

from compliance_platform.models.nist_csf import CsfFunction, CsfCategory, CsfControl

logger = logging.getLogger(__name__)


CSF_FUNCTIONS = [
    {
        "code": "ID",
        "name": "Identify",
        "description": "Develop an organizational understanding to manage cybersecurity risk to systems, people, assets, data, and capabilities.",
        "categories": [
            {
                "code": "ID.AM",
                "name": "Asset Management",
                "description": "The data, personnel, devices, systems, and facilities that enable the organization to achieve business purposes are identified and managed.",
                "controls": [
                    ("ID.AM-1", "Physical devices and systems within the organization are inventoried",
                     "Maintain an accurate inventory of all hardware assets to understand what needs protection.", "high"),
                    ("ID.AM-2", "Software platforms and applications within the organization are inventoried",
                     "Track all software assets including operating systems, applications, and services.", "high"),
                    ("ID.AM-3", "Organizational communication and data flows are mapped",
                     "Document how data moves through your organization and with external parties.", "medium"),
                ],
            },
            {
                "code": "ID.BE",
                "name": "Business Environment",
                "description": "The organization's mission, objectives, stakeholders, and activities are understood and prioritized.",
                "controls": [
                    ("ID.BE-1", "The organization's role in the supply chain is identified and communicated",
                     "Understand your position in the supply chain and associated dependencies.", "medium"),
                    ("ID.BE-3", "Priorities for organizational mission, objectives, and activities are established and communicated",
                     "Define what's most important to protect based on business priorities.", "high"),
                ],
            },
            {
                "code": "ID.GV",
                "name": "Governance",
                "description": "The policies, procedures, and processes to manage and monitor regulatory, legal, risk, and operational requirements are understood.",
                "controls": [
                    ("ID.GV-1", "Organizational cybersecurity policy is established and communicated",
                     "Create and disseminate comprehensive cybersecurity policies.", "critical"),
                    ("ID.GV-2", "Cybersecurity roles and responsibilities are coordinated and aligned with internal roles and external partners",
                     "Define who is responsible for what in cybersecurity.", "high"),
                    ("ID.GV-3", "Legal and regulatory requirements regarding cybersecurity are understood and managed",
                     "Ensure compliance with applicable laws and regulations.", "critical"),
                ],
            },
            {
                "code": "ID.RA",
                "name": "Risk Assessment",
                "description": "The organization understands the cybersecurity risk to organizational operations, assets, and individuals.",
                "controls": [
                    ("ID.RA-1", "Asset vulnerabilities are identified and documented",
                     "Regularly scan and document vulnerabilities in your assets.", "high"),
                    ("ID.RA-3", "Threats, both internal and external, are identified and documented",
                     "Maintain a comprehensive threat register.", "high"),
                ],
            },
        ],
    },
    {
        "code": "PR",
        "name": "Protect",
        "description": "Develop and implement appropriate safeguards to ensure delivery of critical services.",
        "categories": [
            {
                "code": "PR.AC",
                "name": "Identity Management, Authentication and Access Control",
                "description": "Access to physical and logical assets is limited to authorized users, processes, and devices.",
                "controls": [
                    ("PR.AC-1", "Identities and credentials are issued, managed, verified, revoked, and audited for authorized devices, users and processes",
                     "Implement comprehensive identity and access management.", "critical"),
                    ("PR.AC-3", "Remote access is managed",
                     "Control and monitor all remote access to organizational resources.", "critical"),
                    ("PR.AC-4", "Access permissions and authorizations are managed, incorporating the principles of least privilege and separation of duties",
                     "Grant users only the minimum access they need.", "critical"),
                ],
            },
            {
                "code": "PR.DS",
                "name": "Data Security",
                "description": "Information and records are managed to protect the confidentiality, integrity, and availability of information.",
                "controls": [
                    ("PR.DS-1", "Data-at-rest is protected",
                     "Encrypt sensitive data when stored.", "critical"),
                    ("PR.DS-2", "Data-in-transit is protected",
                     "Use encryption for data moving across networks.", "critical"),
                    ("PR.DS-5", "Protections against data leaks are implemented",
                     "Implement DLP and other data leakage prevention measures.", "high"),
                ],
            },
        ],
    },
    {
        "code": "DE",
        "name": "Detect",
        "description": "Develop and implement appropriate activities to identify the occurrence of a cybersecurity event.",
        "categories": [
            {
                "code": "DE.AE",
                "name": "Anomalies and Events",
                "description": "Anomalous activity is detected and the potential impact of events is understood.",
                "controls": [
                    ("DE.AE-1", "A baseline of network operations and expected data flows for users and systems is established and managed",
                     "Know what normal looks like to detect anomalies.", "high"),
                    ("DE.AE-3", "Event data are collected and correlated from multiple sources and sensors",
                     "Aggregate logs from various sources for comprehensive visibility.", "medium"),
                ],
            },
            {
                "code": "DE.CM",
                "name": "Security Continuous Monitoring",
                "description": "The information system and assets are monitored to identify cybersecurity events and verify the effectiveness of protective measures.",
                "controls": [
                    ("DE.CM-1", "The network is monitored to detect potential cybersecurity events",
                     "Implement continuous network monitoring solutions.", "critical"),
                    ("DE.CM-4", "Malicious code is detected",
                     "Deploy and maintain anti-malware solutions.", "critical"),
                    ("DE.CM-7", "Monitoring for unauthorized personnel, connections, devices, and software is performed",
                     "Detect unauthorized access and rogue devices.", "high"),
                ],
            },
        ],
    },
    {
        "code": "RS",
        "name": "Respond",
        "description": "Develop and implement appropriate activities to take action regarding a detected cybersecurity incident.",
        "categories": [
            {
                "code": "RS.RP",
                "name": "Response Planning",
                "description": "Response processes and procedures are executed and maintained.",
                "controls": [
                    ("RS.RP-1", "Response plan is executed during or after an incident",
                     "Have documented incident response procedures and follow them.", "critical"),
                ],
            },
            {
                "code": "RS.CO",
                "name": "Communications",
                "description": "Response activities are coordinated with internal and external stakeholders.",
                "controls": [
                    ("RS.CO-1", "Personnel know their roles and order of operations when a response is needed",
                     "Clearly define incident response roles and responsibilities.", "high"),
                    ("RS.CO-2", "Incidents are reported consistent with established criteria",
                     "Define what constitutes an incident and how to report it.", "high"),
                ],
            },
            {
                "code": "RS.MI",
                "name": "Mitigation",
                "description": "Activities are performed to prevent expansion of an event, mitigate its effects, and eradicate the incident.",
                "controls": [
                    ("RS.MI-1", "Incidents are contained",
                     "Isolate affected systems to prevent incident spread.", "critical"),
                    ("RS.MI-3", "Newly identified vulnerabilities are mitigated or documented as accepted risks",
                     "Address vulnerabilities discovered during incident response.", "high"),
                ],
            },
        ],
    },
    {
        "code": "RC",
        "name": "Recover",
        "description": "Develop and implement appropriate activities to maintain plans for resilience and to restore impaired capabilities or services.",
        "categories": [
            {
                "code": "RC.RP",
                "name": "Recovery Planning",
                "description": "Recovery processes and procedures are executed and maintained.",
                "controls": [
                    ("RC.RP-1", "Recovery plan is executed during or after a cybersecurity incident",
                     "Follow documented recovery procedures after incidents.", "critical"),
                ],
            },
            {
                "code": "RC.IM",
                "name": "Improvements",
                "description": "Recovery planning and processes are improved by incorporating lessons learned.",
                "controls": [
                    ("RC.IM-1", "Recovery plans incorporate lessons learned",
                     "Update recovery procedures based on incident experiences.", "medium"),
                ],
            },
            {
                "code": "RC.CO",
                "name": "Communications",
                "description": "Restoration activities are coordinated with internal and external parties.",
                "controls": [
                    ("RC.CO-3", "Recovery activities are communicated to internal and external stakeholders",
                     "Keep stakeholders informed about recovery progress.", "high"),
                ],
            },
        ],
    },
]


def ensure_nist_csf_seeded(db: Session) -> int:
    """
    Insert any catalog rows that are missing. Existing rows are left as-is,
    so repeated calls are no-ops.

    Returns:
        Number of controls inserted
    """
    existing_codes = {code for (code,) in db.query(CsfControl.control_code).all()}
    inserted = 0

    for function_order, function_data in enumerate(CSF_FUNCTIONS, start=1):
        function = db.query(CsfFunction).filter(CsfFunction.function_code == function_data["code"]).first()
        if not function:
            function = CsfFunction(
                function_code=function_data["code"],
                function_name=function_data["name"],
                description=function_data["description"],
                display_order=function_order,
            )
            db.add(function)
            db.flush()  # Get ID

        for category_order, category_data in enumerate(function_data["categories"], start=1):
            category = db.query(CsfCategory).filter(CsfCategory.category_code == category_data["code"]).first()
            if not category:
                category = CsfCategory(
                    function_id=function.id,
                    category_code=category_data["code"],
                    category_name=category_data["name"],
                    description=category_data["description"],
                    display_order=category_order,
                )
                db.add(category)
                db.flush()

            for control_order, (code, name, guidance, importance) in enumerate(category_data["controls"], start=1):
                if code in existing_codes:
                    continue
                db.add(CsfControl(
                    category_id=category.id,
                    control_code=code,
                    control_name=name,
                    description=name,
                    guidance=guidance,
                    importance=importance,
                    display_order=control_order,
                ))
                inserted += 1

    db.commit()

    if inserted:
        logger.info(f"Seeded {inserted} NIST CSF controls")
    else:
        logger.info("NIST CSF catalog already seeded. Skipping seed.")
    return inserted
