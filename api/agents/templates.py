"""Answer and analysis templates for the knowledge responders.

Query templates are grouped by query type. Within a group the first template
whose keywords appear in the question is used; the last template in each
group has no keywords and acts as the fallback.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from libs.models.firestore import CaseLawEntry, DocumentType, QueryType, Reference


@dataclass(frozen=True)
class ResponseTemplate:
    answer: str
    references: tuple[Reference, ...] = ()
    case_laws: tuple[CaseLawEntry, ...] = ()
    keywords: tuple[str, ...] = ()

    def applies_to(self, text: str) -> bool:
        return not self.keywords or any(keyword in text for keyword in self.keywords)


@dataclass(frozen=True)
class AnalysisTemplate:
    analysis: str
    recommendations: tuple[str, ...] = field(default_factory=tuple)


def _ref(title: str, section: str, text: str) -> Reference:
    return Reference(title=title, section=section, text=text)


def _case(citation: str, title: str, summary: str) -> CaseLawEntry:
    return CaseLawEntry(citation=citation, title=title, summary=summary)


PENAL_CODE = "Penal Code"
CPC = "Criminal Procedure Code"
CONSTITUTION = "Constitution of Kenya"


DEFINITION_TEMPLATES = (
    ResponseTemplate(
        keywords=("robbery",),
        answer=(
            "Robbery is defined under Section 296 of the Penal Code (Cap. 63) of Kenya as theft with violence. "
            "Specifically, a person is guilty of robbery if they steal anything and, at the time of or immediately "
            "before or after the theft, uses or threatens to use actual violence against any person or property to "
            "obtain or retain the stolen property.\n\n"
            "There are two main categories of robbery under Kenyan law:\n"
            "1. Simple robbery (Section 296(1)): Theft with violence but without aggravating factors\n"
            "2. Aggravated robbery (Section 296(2)): Robbery with additional serious elements such as being armed "
            "with dangerous weapons, being in company with others, or causing grievous harm\n\n"
            "The punishment for simple robbery is imprisonment for up to fourteen years, while aggravated robbery "
            "carries a minimum sentence of seven years and can extend to life imprisonment."
        ),
        references=(
            _ref(PENAL_CODE, "Section 296", "Definition of robbery and aggravated robbery"),
            _ref(PENAL_CODE, "Section 297", "Punishment for robbery"),
        ),
        case_laws=(
            _case(
                "Joseph Mwangi v Republic, Criminal Appeal No. 32 of 2014",
                "Joseph Mwangi v Republic",
                "The Court of Appeal clarified the elements required to prove robbery with violence under "
                "Section 296(2) of the Penal Code.",
            ),
        ),
    ),
    ResponseTemplate(
        keywords=("theft", "steal", "stealing"),
        answer=(
            "Theft is defined under Section 268 of the Penal Code (Cap. 63) of Kenya as the dishonest taking of "
            "property with the intention to permanently deprive the owner of it.\n\n"
            "The essential elements of theft under Kenyan law are:\n"
            "1. Dishonest taking and carrying away\n"
            "2. Of movable property\n"
            "3. Without the consent of the owner\n"
            "4. With the intention to permanently deprive the owner of the property\n\n"
            "Theft is distinguished from robbery in that it does not involve the use or threat of violence. The "
            "punishment depends on the value and nature of the stolen property, with penalties ranging from fines "
            "to imprisonment for up to seven years for general theft (Section 275), and up to ten years for stealing "
            "specific types of property (Section 278)."
        ),
        references=(
            _ref(PENAL_CODE, "Section 268", "Definition of theft"),
            _ref(PENAL_CODE, "Section 275", "General punishment for theft"),
        ),
        case_laws=(
            _case(
                "John Kimani v Republic, Criminal Appeal No. 116 of 2010",
                "John Kimani v Republic",
                "The prosecution must prove all elements of theft, including the intention to permanently deprive "
                "the owner of the property.",
            ),
        ),
    ),
    ResponseTemplate(
        keywords=("assault",),
        answer=(
            "Assault is defined under Section 250 of the Penal Code (Cap. 63) of Kenya. There are two main types "
            "of assault under Kenyan law:\n\n"
            "1. Common assault (Section 250): Any person who unlawfully assaults another is guilty of a misdemeanor "
            "and is liable to imprisonment for one year.\n\n"
            "2. Assault causing actual bodily harm (Section 251): Any person who commits an assault occasioning "
            "actual bodily harm is guilty of a misdemeanor and is liable to imprisonment for five years.\n\n"
            "An assault occurs when a person directly or indirectly applies force to another person without their "
            "consent, or attempts or threatens to apply force in circumstances where the threat appears capable of "
            "being carried out. Actual bodily harm is any hurt or injury that interferes with the health or comfort "
            "of the victim and is more than merely transient or trifling."
        ),
        references=(
            _ref(PENAL_CODE, "Section 250", "Definition of common assault"),
            _ref(PENAL_CODE, "Section 251", "Assault causing actual bodily harm"),
        ),
        case_laws=(
            _case(
                "Peter Ochieng v Republic, Criminal Appeal No. 78 of 2015",
                "Peter Ochieng v Republic",
                "Actual bodily harm requires proof of injury that is more than merely transient or trifling.",
            ),
        ),
    ),
    ResponseTemplate(
        answer=(
            "Based on your query about legal definitions in Kenyan criminal law, I've analyzed the relevant "
            "statutes and case law.\n\n"
            "The term you're inquiring about appears to relate to offenses under the Penal Code (Cap. 63) of Kenya. "
            "In Kenya, criminal offenses are primarily defined in the Penal Code, with additional offenses found in "
            "various other statutes. The interpretation of these terms is guided by:\n\n"
            "1. Statutory definitions provided in the relevant laws\n"
            "2. Judicial interpretations through case precedents\n"
            "3. Common law principles where applicable\n\n"
            "For a precise definition of this specific term, consult the relevant sections of the Penal Code or "
            "seek advice from a qualified advocate who specializes in criminal law."
        ),
        references=(
            _ref(PENAL_CODE, "Cap. 63", "Primary source of criminal law definitions in Kenya"),
            _ref("Interpretation and General Provisions Act", "Cap. 2", "Provides guidance on statutory interpretation"),
        ),
    ),
)


MURDER_CASES = (
    _case(
        "Republic v Abdalla Wendo & Others [1953] EACA 166",
        "Republic v Abdalla Wendo & Others",
        "Established the felony murder rule in Kenya",
    ),
    _case(
        "Nzoia Sugar Company Ltd v Fungututi [1988] KLR 399",
        "Nzoia Sugar Company Ltd v Fungututi",
        "Distinguished between murder and manslaughter based on malice aforethought",
    ),
    _case(
        "Joseph Mwangi Gitau v Republic [2020] eKLR",
        "Joseph Mwangi Gitau v Republic",
        "Clarified the elements required to prove murder",
    ),
    _case(
        "Francis Karioko Muruatetu & another v Republic [2017] eKLR",
        "Francis Karioko Muruatetu & another v Republic",
        "Declared mandatory death sentence for murder unconstitutional",
    ),
)

BAIL_CASES = (
    _case(
        "Republic v Joktan Mayende & 4 others [2018] eKLR",
        "Republic v Joktan Mayende & 4 others",
        "Emphasized bail as a constitutional right, not a privilege",
    ),
    _case(
        "Aboud Rogo Mohammed & another v Republic [2011] eKLR",
        "Aboud Rogo Mohammed & another v Republic",
        "The burden of proving compelling reasons to deny bail rests with the prosecution",
    ),
    _case(
        "Republic v John Mutinda Mutiso [2017] eKLR",
        "Republic v John Mutinda Mutiso",
        "Outlined factors to consider when determining bail amounts",
    ),
    _case(
        "Samuel Mwangi Ndung'u v Republic [2020] eKLR",
        "Samuel Mwangi Ndung'u v Republic",
        "Previous convictions alone are not sufficient compelling reasons to deny bail",
    ),
    _case(
        "Abubakar Ahmed & 12 others v Republic [2018] eKLR",
        "Abubakar Ahmed & 12 others v Republic",
        "Stringent bail conditions that effectively amount to a denial of bail are unconstitutional",
    ),
)

BAIL_REFERENCES = (
    _ref(CONSTITUTION, "Article 49(1)(h)", "Right to be released on bond or bail on reasonable conditions"),
    _ref(CPC, "Section 123", "General provisions as to bail"),
)


CASE_LAW_TEMPLATES = (
    ResponseTemplate(
        keywords=("murder", "homicide", "manslaughter"),
        answer=(
            "Regarding case law on murder in Kenya, several landmark cases have shaped the interpretation and "
            "application of murder laws:\n\n"
            "1. *Republic v Abdalla Wendo & Others (1953)* established the felony murder rule in Kenya, where a "
            "death occurring during the commission of a felony can be charged as murder even without specific "
            "intent to kill.\n\n"
            "2. *Nzoia Sugar Company Ltd v Fungututi [1988] KLR 399* distinguished between murder and manslaughter "
            "based on the presence or absence of malice aforethought.\n\n"
            "3. *Joseph Mwangi Gitau v Republic [2020] eKLR*: the Court of Appeal held that for a murder conviction "
            "the prosecution must prove beyond reasonable doubt the death of the deceased, that the death was caused "
            "by an unlawful act or omission of the accused, and malice aforethought.\n\n"
            "4. *Francis Karioko Muruatetu & another v Republic [2017] eKLR*: the Supreme Court declared the "
            "mandatory death sentence for murder unconstitutional, giving judges discretion in sentencing.\n\n"
            "Kenyan courts require clear proof of malice aforethought to distinguish murder from manslaughter, and "
            "allow mitigating circumstances to be considered at sentencing."
        ),
        references=(
            _ref(PENAL_CODE, "Section 203", "Definition of murder"),
            _ref(PENAL_CODE, "Section 204", "Punishment for murder"),
        ),
        case_laws=MURDER_CASES,
    ),
    ResponseTemplate(
        keywords=("bail", "bond"),
        answer=(
            "Regarding case law on bail and bond in Kenya, several significant cases have shaped the current legal "
            "framework:\n\n"
            "1. *Republic v Joktan Mayende & 4 others [2018] eKLR*: bail is a constitutional right under Article "
            "49(1)(h), not a privilege, and should only be denied when compelling reasons exist.\n\n"
            "2. *Aboud Rogo Mohammed & another v Republic [2011] eKLR*: the burden of proving compelling reasons to "
            "deny bail rests with the prosecution.\n\n"
            "3. *Republic v John Mutinda Mutiso [2017] eKLR* outlined the factors for determining bail amounts, "
            "including the seriousness of the offense, the strength of the prosecution's case, the accused's "
            "community ties and the risk of flight.\n\n"
            "4. *Samuel Mwangi Ndung'u v Republic [2020] eKLR*: previous convictions alone are not sufficient "
            "compelling reasons to deny bail.\n\n"
            "5. *Abubakar Ahmed & 12 others v Republic [2018] eKLR*: stringent bail conditions that effectively "
            "amount to a denial of bail are unconstitutional.\n\n"
            "Kenyan courts strongly uphold the constitutional right to bail, placing the burden on the prosecution "
            "to demonstrate compelling reasons for denial."
        ),
        references=BAIL_REFERENCES,
        case_laws=BAIL_CASES,
    ),
    ResponseTemplate(
        keywords=("robbery",),
        answer=(
            "Kenyan courts have consistently held that a conviction for robbery with violence under Section 296(2) "
            "of the Penal Code requires proof of any one of three elements: the offender was armed with a dangerous "
            "or offensive weapon, was in the company of one or more other persons, or used personal violence at or "
            "immediately before or after the robbery.\n\n"
            "Following the Muruatetu decision, sentencing courts also consider mitigating circumstances rather than "
            "imposing the death penalty mechanically."
        ),
        references=(
            _ref(PENAL_CODE, "Section 296(2)", "Robbery with violence"),
            _ref(PENAL_CODE, "Section 297", "Punishment for robbery"),
        ),
        case_laws=(
            _case(
                "Joseph Lendrix Waswa v Republic [2014] eKLR",
                "Joseph Lendrix Waswa v Republic",
                "Elements of robbery with violence under Section 296(2)",
            ),
        ),
    ),
    ResponseTemplate(
        answer=(
            "Based on your query about case law in the Kenyan criminal justice system, the decisions of the Supreme "
            "Court, the Court of Appeal and the High Court are published on Kenya Law (kenyalaw.org) with eKLR "
            "citations.\n\n"
            "Decisions of higher courts bind lower courts under the doctrine of precedent. When relying on a "
            "decision, check:\n"
            "1. Which court decided it and whether it has been overturned on appeal\n"
            "2. Whether the facts are sufficiently similar to your situation\n"
            "3. Whether the statute it interprets has since been amended\n\n"
            "An advocate can help identify the authorities most relevant to your case."
        ),
        references=(
            _ref(CONSTITUTION, "Article 163(7)", "Supreme Court decisions bind all other courts"),
            _ref("Judicature Act", "Cap. 8", "Sources of law applied by Kenyan courts"),
        ),
    ),
)


PROCEDURE_TEMPLATES = (
    ResponseTemplate(
        keywords=("bail", "bond"),
        answer=(
            "Bail is a constitutional right under Article 49(1)(h) of the Constitution of Kenya. An arrested person "
            "may be released on bond or bail on reasonable conditions unless there are compelling reasons not to "
            "release them.\n\n"
            "The procedure is:\n"
            "1. Apply for police cash bail at the station, or for bail at your first court appearance\n"
            "2. The court considers the nature of the charge, the strength of the evidence, your ties to the "
            "community and the risk of absconding or interfering with witnesses\n"
            "3. Bail may be granted with or without sureties\n"
            "4. If bail is denied or the terms are excessive, you may apply for review in the High Court\n\n"
            "The Bail and Bond Policy Guidelines (2015) guide courts on setting reasonable terms."
        ),
        references=BAIL_REFERENCES,
        case_laws=BAIL_CASES[:2],
    ),
    ResponseTemplate(
        keywords=("arrest", "arrested", "police", "custody"),
        answer=(
            "When a person is arrested in Kenya, Article 49 of the Constitution and Sections 21 to 24 of the "
            "Criminal Procedure Code govern the process:\n\n"
            "1. The arresting officer must inform you promptly, in a language you understand, of the reason for "
            "the arrest\n"
            "2. You have the right to remain silent and to communicate with an advocate\n"
            "3. You must be brought before a court within 24 hours, or on the next court day\n"
            "4. You may not be compelled to make any confession or admission\n"
            "5. You may be released on police bond pending investigation or charge\n\n"
            "Evidence obtained in violation of these rights may be excluded under Article 50(4)."
        ),
        references=(
            _ref(CONSTITUTION, "Article 49", "Rights of arrested persons"),
            _ref(CPC, "Section 21-24", "Arrest procedures"),
        ),
    ),
    ResponseTemplate(
        keywords=("appeal",),
        answer=(
            "An appeal from a subordinate court's conviction or sentence lies to the High Court under Section 347 "
            "of the Criminal Procedure Code, and a further appeal lies to the Court of Appeal on matters of law.\n\n"
            "1. File a petition of appeal within 14 days of the judgment\n"
            "2. Attach a copy of the judgment or order, or explain why it is not yet available\n"
            "3. State the grounds of appeal clearly\n"
            "4. Apply for bail pending appeal if you are in custody\n\n"
            "The court may admit an appeal filed out of time where good cause is shown."
        ),
        references=(
            _ref(CPC, "Section 347", "Appeals from subordinate courts"),
            _ref(CPC, "Section 349", "Limitation period for appeals"),
        ),
    ),
    ResponseTemplate(
        keywords=("court", "trial", "plea", "hearing"),
        answer=(
            "The Kenyan criminal court process follows these general steps:\n\n"
            "1. Plea taking at the first appearance\n"
            "2. Bail or bond application\n"
            "3. Pre-trial disclosure of the prosecution's evidence\n"
            "4. Trial, where the prosecution presents its case and the defence responds\n"
            "5. Judgment and, if convicted, mitigation and sentencing\n"
            "6. Appeal\n\n"
            "Article 50 of the Constitution guarantees a fair and public hearing without unreasonable delay."
        ),
        references=(
            _ref(CPC, "Section 200-205", "Court procedures"),
            _ref(CONSTITUTION, "Article 50", "Fair hearing"),
        ),
    ),
    ResponseTemplate(
        answer=(
            "Criminal procedure in Kenya is governed mainly by the Criminal Procedure Code (Cap. 75) and the Bill "
            "of Rights in Chapter Four of the Constitution.\n\n"
            "In general:\n"
            "1. Keep copies of every document you receive from the police or the court\n"
            "2. Note all deadlines, since many procedural steps are time-bound\n"
            "3. Seek the assistance of an advocate or a legal aid provider early\n\n"
            "If you describe the specific step you are facing, more detailed guidance can be provided."
        ),
        references=(
            _ref(CPC, "Cap. 75", "Primary source of criminal procedure in Kenya"),
            _ref(CONSTITUTION, "Article 50", "Fair hearing"),
        ),
    ),
)


GENERAL_TEMPLATES = (
    ResponseTemplate(
        answer=(
            "Based on Kenyan criminal law, this situation would typically be handled according to the Criminal "
            "Procedure Code. The specific details would depend on the exact circumstances of your case."
        ),
        references=(
            _ref(CPC, "Various sections", "Relevant procedures for this type of case"),
        ),
    ),
)


QUERY_TEMPLATES: dict[QueryType, tuple[ResponseTemplate, ...]] = {
    QueryType.LEGAL_DEFINITION: DEFINITION_TEMPLATES,
    QueryType.CASE_LAW: CASE_LAW_TEMPLATES,
    QueryType.PROCEDURAL_GUIDANCE: PROCEDURE_TEMPLATES,
    QueryType.GENERAL: GENERAL_TEMPLATES,
}


def select_query_template(query_type: QueryType | str, text: str) -> ResponseTemplate:
    """Pick the template for a query type and lowercased question text."""
    templates = QUERY_TEMPLATES.get(QueryType(query_type), GENERAL_TEMPLATES)
    for template in templates:
        if template.applies_to(text):
            return template
    return templates[-1]


DOCUMENT_TEMPLATES: dict[DocumentType, AnalysisTemplate] = {
    DocumentType.CHARGE_SHEET: AnalysisTemplate(
        analysis=(
            "This charge sheet, \"{title}\", contains allegations related to criminal offenses under the Penal "
            "Code of Kenya.\n\n"
            "Key elements to identify:\n"
            "1. The offense charged and the section of the law cited\n"
            "2. The date and location of the alleged offense\n"
            "3. The particulars of the offense\n"
            "4. The maximum penalty for the offense\n\n"
            "Under Section 134 of the Criminal Procedure Code, a charge must contain a statement of the specific "
            "offense together with particulars reasonably necessary to give information on its nature."
        ),
        recommendations=(
            "Review the elements of the offense to ensure all components are properly specified",
            "Check that the charge sheet correctly cites the relevant sections of the Penal Code",
            "Verify that the particulars of the offense are sufficiently detailed",
            "Consider potential defenses based on the specific allegations in the charge sheet",
            "Prepare to challenge any procedural irregularities in how the charge was filed",
        ),
    ),
    DocumentType.BAIL_APPLICATION: AnalysisTemplate(
        analysis=(
            "This bail application is submitted under Article 49(1)(h) of the Constitution of Kenya, which "
            "guarantees the right to reasonable bail unless compelling reasons exist not to grant bail.\n\n"
            "Document reviewed: \"{title}\".\n\n"
            "Key elements to identify:\n"
            "1. The offense the applicant is charged with\n"
            "2. How long the applicant has been in custody\n"
            "3. The grounds for seeking bail\n"
            "4. The proposed bail amount and sureties\n\n"
            "The application should address the standard factors courts consider when determining bail, including "
            "the seriousness of the offense, the strength of the prosecution's case, the applicant's ties to the "
            "community and the risk of flight."
        ),
        recommendations=(
            "Strengthen the application by providing evidence of the applicant's community ties",
            "Include character references from respected community members",
            "Provide proof of fixed abode within the court's jurisdiction",
            "Address any previous history of court attendance or non-attendance",
            "Be prepared to counter any prosecution arguments regarding flight risk or witness interference",
        ),
    ),
    DocumentType.COURT_ORDER: AnalysisTemplate(
        analysis=(
            "This court order, \"{title}\", sets out directions that are binding on the parties named in it.\n\n"
            "Key elements to identify:\n"
            "1. The court, date and case number\n"
            "2. The specific actions the court has directed\n"
            "3. The deadline for compliance\n"
            "4. The consequences of non-compliance\n\n"
            "A valid order bears the signature of the judicial officer and the court seal."
        ),
        recommendations=(
            "Ensure strict compliance with all directives by the specified deadlines",
            "Document all actions taken to comply with the order",
            "If any aspect of the order is unclear, seek clarification from the court promptly",
            "If compliance is impossible or extremely difficult, consider filing for variation of the order",
            "Be aware that non-compliance may result in contempt proceedings",
        ),
    ),
    DocumentType.LEGAL_NOTICE: AnalysisTemplate(
        analysis=(
            "This legal notice, \"{title}\", requires a response from the person it is addressed to.\n\n"
            "Key elements to identify:\n"
            "1. The issuing authority or person\n"
            "2. The actions or responses required\n"
            "3. The deadline for response\n"
            "4. The potential consequences of ignoring it\n\n"
            "A properly served notice states its purpose, the required actions and the consequences of "
            "non-compliance."
        ),
        recommendations=(
            "Respond to the notice within the specified timeframe",
            "Ensure your response addresses all points raised in the notice",
            "Maintain records of your response and any related communications",
            "Consider seeking legal representation before responding",
            "If you dispute the claims, clearly state your grounds and provide supporting evidence",
        ),
    ),
    DocumentType.APPEAL: AnalysisTemplate(
        analysis=(
            "This appeal document, \"{title}\", challenges a decision of a lower court.\n\n"
            "Key elements to identify:\n"
            "1. The decision appealed against and its date\n"
            "2. The grounds of appeal\n"
            "3. The orders sought from the appellate court\n"
            "4. Whether the appeal was filed within 14 days under Section 349 of the Criminal Procedure Code"
        ),
        recommendations=(
            "Confirm the appeal was lodged within the statutory time limit or seek leave to file out of time",
            "Ensure each ground of appeal identifies a specific error of law or fact",
            "Attach certified copies of the judgment and the trial proceedings",
            "Consider applying for bail pending appeal if the appellant is in custody",
            "Prepare written submissions supported by relevant authorities",
        ),
    ),
    DocumentType.AFFIDAVIT: AnalysisTemplate(
        analysis=(
            "This affidavit, \"{title}\", is a sworn statement of facts made under the Oaths and Statutory "
            "Declarations Act (Cap. 15).\n\n"
            "Key elements to identify:\n"
            "1. The identity of the deponent\n"
            "2. The facts deponed to, in numbered paragraphs\n"
            "3. Annexed exhibits\n"
            "4. The commissioning details"
        ),
        recommendations=(
            "Confirm the affidavit is commissioned by a Commissioner for Oaths",
            "Limit the contents to facts within the deponent's own knowledge",
            "Mark and reference every annexed exhibit",
            "Remove argument and legal conclusions from the body",
            "Ensure the deponent understands that false statements amount to perjury",
        ),
    ),
    DocumentType.OTHER: AnalysisTemplate(
        analysis=(
            "This document, \"{title}\", appears to relate to a matter within the Kenyan legal system.\n\n"
            "Key elements to identify:\n"
            "1. The type of document\n"
            "2. The parties involved\n"
            "3. The main legal issues\n"
            "4. Key dates mentioned"
        ),
        recommendations=(
            "Consult with a qualified advocate regarding the specific legal implications",
            "Verify all factual claims made in the document",
            "Check that all referenced laws and statutes are current and applicable",
            "Consider how this document relates to your broader legal situation",
            "Maintain this document as part of your legal records",
        ),
    ),
}


def select_document_template(document_type: DocumentType | str) -> AnalysisTemplate:
    try:
        return DOCUMENT_TEMPLATES[DocumentType(document_type)]
    except (KeyError, ValueError):
        return DOCUMENT_TEMPLATES[DocumentType.OTHER]
