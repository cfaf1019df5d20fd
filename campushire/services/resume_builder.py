"""PDF résumé rendering with reportlab"""

import os
import time
from typing import List

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from xml.sax.saxutils import escape

from campushire.models.mongodb_models import User

PRIMARY = colors.HexColor("#1e40af")
HEADING = colors.HexColor("#1f2937")
BODY = colors.HexColor("#374151")
MUTED = colors.HexColor("#6b7280")
FOOTER = colors.HexColor("#9ca3af")

DEFAULT_LANGUAGES = "English (Fluent), Bengali (Native)"
DEFAULT_INTERESTS = ["Technology", "Innovation", "Continuous Learning"]
GENERIC_STRENGTHS = [
    "Excellent problem-solving and analytical skills",
    "Effective communication and teamwork abilities",
    "Quick learner with adaptability to new technologies",
]


def _styles():
    base = getSampleStyleSheet()
    return {
        "name": ParagraphStyle("Name", parent=base["Title"], fontSize=28, leading=34,
                               textColor=colors.white, alignment=TA_CENTER),
        "contact": ParagraphStyle("Contact", parent=base["Normal"], fontSize=12, leading=15,
                                  textColor=colors.white, alignment=TA_CENTER),
        "social": ParagraphStyle("Social", parent=base["Normal"], fontSize=11,
                                 textColor=colors.HexColor("#bfdbfe"), alignment=TA_CENTER),
        "section": ParagraphStyle("Section", parent=base["Heading4"], fontName="Helvetica-Bold",
                                  fontSize=12, textColor=colors.white),
        "item": ParagraphStyle("Item", parent=base["Normal"], fontName="Helvetica-Bold",
                               fontSize=11, leading=14, textColor=HEADING),
        "meta": ParagraphStyle("Meta", parent=base["Normal"], fontSize=9, textColor=MUTED),
        "body": ParagraphStyle("Body", parent=base["Normal"], fontSize=10, leading=13,
                               textColor=BODY, alignment=TA_JUSTIFY),
        "footer": ParagraphStyle("Footer", parent=base["Normal"], fontSize=8,
                                 textColor=FOOTER, alignment=TA_CENTER),
    }


def _banner(rows: List, width: float, padding: int = 4) -> Table:
    table = Table([[row] for row in rows], colWidths=[width])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), PRIMARY),
        ("TOPPADDING", (0, 0), (-1, -1), padding),
        ("BOTTOMPADDING", (0, 0), (-1, -1), padding),
        ("LEFTPADDING", (0, 0), (-1, -1), 10),
    ]))
    return table


def build_summary(user: User) -> str:
    profile = user.profile
    background = f"background in {profile.department}" if profile.department else "strong academic foundation"
    batch = f" ({profile.batch})" if profile.batch else ""
    if profile.company:
        current = f"Currently working as {profile.job_title or 'Professional'} at {profile.company}."
    else:
        current = "Seeking opportunities to apply knowledge and skills in a professional environment."
    return f"{user.role.value} with {background}{batch}. {current}"


def build_story(user: User, width: float) -> List:
    s = _styles()
    profile = user.profile
    story: List = []

    def text(value, style="body"):
        story.append(Paragraph(escape(str(value)), s[style]))

    def section(title):
        story.append(Spacer(1, 4 * mm))
        story.append(_banner([Paragraph(escape(title.upper()), s["section"])], width))
        story.append(Spacer(1, 2 * mm))

    header = [Paragraph(escape(user.name or "Your Name"), s["name"])]
    contact = [c for c in (user.email, profile.phone) if c]
    if contact:
        header.append(Paragraph(escape(" • ".join(contact)), s["contact"]))
    social = [label for label, value in (("LinkedIn", profile.linkedin), ("GitHub", profile.github)) if value]
    if social:
        header.append(Paragraph(" • ".join(social), s["social"]))
    story.append(_banner(header, width, padding=8))

    section("Professional Summary")
    text(build_summary(user))

    section("Education")
    text("BRAC University", "item")
    for label, value in (("Department", profile.department), ("Batch", profile.batch),
                         ("School", profile.school), ("College", profile.college)):
        if value:
            text(f"{label}: {value}")

    if profile.experience:
        section("Professional Experience")
        for exp in profile.experience:
            if not (exp.title or exp.company):
                continue
            text(f"{exp.title or 'Position'}{f' at {exp.company}' if exp.company else ''}", "item")
            if exp.duration:
                text(exp.duration, "meta")
            if exp.description:
                text(exp.description)
            story.append(Spacer(1, 2 * mm))

    skills = [skill for skill in profile.skills if skill.strip()]
    if skills:
        section("Technical Skills")
        for i in range(0, len(skills), 3):
            text("    ".join(f"• {skill}" for skill in skills[i:i + 3]))

    if profile.awards:
        section("Awards & Achievements")
        for award in profile.awards:
            if not award.title:
                continue
            text(award.title, "item")
            org_year = ", ".join(v for v in (award.organization, award.year) if v)
            if org_year:
                text(org_year, "meta")
            if award.description:
                text(award.description)

    if profile.company and profile.job_title:
        section("Current Employment")
        text(profile.job_title, "item")
        text(profile.company)

    if not profile.experience:
        section("Key Strengths")
        if skills:
            text(f"• Strong technical skills in {', '.join(skills[:3])}")
        if profile.department:
            text(f"• Solid foundation in {profile.department} studies")
        for strength in GENERIC_STRENGTHS:
            text(f"• {strength}")

    section("Additional Information")
    text("Languages:", "item")
    text(", ".join(profile.languages) if profile.languages else DEFAULT_LANGUAGES)
    text("Interests:", "item")
    if profile.interests:
        interests = profile.interests
    else:
        interests = ([profile.department] if profile.department else []) + DEFAULT_INTERESTS
    text(", ".join(interests))

    story.append(Spacer(1, 8 * mm))
    text("Generated by BRAC Out Resume Builder", "footer")
    return story


def render_resume(user: User, output_dir: str) -> str:
    """Write the PDF into output_dir and return the generated filename"""
    os.makedirs(output_dir, exist_ok=True)
    filename = f"resume-{user.id}-{int(time.time() * 1000)}.pdf"
    margin = 30
    doc = SimpleDocTemplate(
        os.path.join(output_dir, filename),
        pagesize=A4,
        leftMargin=margin,
        rightMargin=margin,
        topMargin=margin,
        bottomMargin=margin,
        title=f"{user.name} - Resume",
        author=user.name,
        creator="CampusHire Resume Builder",
    )
    doc.build(build_story(user, doc.width))
    return filename
