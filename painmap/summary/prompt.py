# painmap/summary/prompt.py
from __future__ import annotations

from typing import List, Optional, Tuple

from painmap.submission.payload import SubmissionPayload
from painmap.wizard.schema import (
    Aggravators,
    AssociatedSymptoms,
    FunctionalImpact,
    HistoryContext,
    Relievers,
    Timing,
)


SYSTEM_PROMPT = "You are a clinical AI assistant analyzing a comprehensive pain assessment form."

# (attribute, how it reads in the prompt), in the order they are listed.
_AGGRAVATOR_LABELS: List[Tuple[str, str]] = [
    ("sitting", "sitting"),
    ("standing", "standing"),
    ("walking", "walking"),
    ("bending", "bending forward"),
    ("lifting", "lifting"),
    ("twisting", "twisting"),
    ("coughing", "coughing/sneezing"),
    ("morning_worse", "mornings"),
    ("evening_worse", "evenings"),
    ("weather", "weather changes"),
    ("stress", "stress"),
]

_RELIEVER_LABELS: List[Tuple[str, str]] = [
    ("rest", "rest"),
    ("ice", "ice"),
    ("heat", "heat"),
    ("stretching", "stretching"),
    ("movement", "movement"),
    ("medication", "medication"),
]

_SYMPTOM_LABELS: List[Tuple[str, str]] = [
    ("weakness", "Progressive weakness"),
    ("numbness", "Numbness"),
    ("tingling", "Tingling"),
    ("balance_issues", "Balance issues"),
    ("morning_stiffness_30m", "Morning stiffness >30 min"),
    ("fever_chills", "Fever/chills"),
    ("night_sweats", "Night sweats"),
    ("fatigue", "Fatigue"),
    ("swelling", "Swelling"),
    ("redness_warmth", "Redness/warmth"),
    ("bruising", "Bruising"),
    ("locking_catching", "Joint locking/catching"),
    ("instability", "Joint instability"),
    ("headache", "Headache"),
    ("light_sound_sensitive", "Light/sound sensitivity"),
    ("vision_changes", "Vision changes"),
    ("jaw_pain", "Jaw pain"),
    ("chest_pain", "Chest pain"),
    ("shortness_breath", "Shortness of breath"),
    ("nausea_vomiting", "Nausea/vomiting"),
    ("abdominal_pain", "Abdominal pain"),
    ("bowel_change", "Bowel changes"),
    ("bladder_change", "Bladder changes"),
    ("menstrual_link", "Menstrual cycle link"),
    ("saddle_numbness", "Saddle numbness"),
    ("incontinence", "Incontinence"),
]

_RED_FLAG_ANSWER_LABELS: List[Tuple[str, str]] = [
    ("bowel_bladder_dysfunction", "Bowel/Bladder Dysfunction"),
    ("progressive_weakness", "Progressive Weakness"),
    ("saddle_anesthesia", "Saddle Anesthesia"),
    ("unexplained_weight_loss", "Unexplained Weight Loss"),
    ("fever_chills", "Fever/Chills"),
    ("night_pain", "Severe Night Pain"),
    ("cancer_history", "History of Cancer"),
    ("recent_trauma", "Recent Trauma/Injury"),
]

SUMMARY_INSTRUCTIONS = """
=================================================================================
PATIENT HEALTH SUMMARY INSTRUCTIONS:
=================================================================================
Provide a clear health summary for the patient, covering the items below:
1. Pain & symptoms: describe location(s), intensity, quality, timing, and pattern.
2. Related symptoms: include associated symptoms plus what makes things better or worse.
3. Impact on daily life: explain limitations in activities or daily tasks.
4. Health background: include relevant medical history, other conditions, and previous treatments.
5. Warning signs assessment: evaluate urgency based on symptoms
   - URGENT: Loss of bowel/bladder control, numbness in groin/inner thigh, progressive leg weakness, severe neurological symptoms
   - SOON: Fever, unexplained weight loss, night pain, cancer history with new pain
   - ROUTINE: No concerning warning signs
6. Your goals: connect findings to what you want to achieve with treatment.
7. What this might mean: explain possible causes and contributing factors using clear language (no definitive diagnoses).
8. Next steps: recommend actions and indicate how soon you should be seen.

OUTPUT REQUIREMENTS (HTML ONLY):
- Respond with semantic HTML fragments only. Do not return Markdown, backticks, or plain text.
- Use the following structure (class names optional but recommended):

<section class="clinical-summary">
  <section class="clinical-overview">
    <h3>Clinical Overview</h3>
    <p>...</p>
  </section>
  <section class="key-findings">
    <h3>Key Findings</h3>
    <ul>
      <li><strong>Pain Pattern:</strong> ...</li>
      <li><strong>Associated Features:</strong> ...</li>
      <li><strong>Medical Context:</strong> ...</li>
      <li><strong>Red Flags:</strong> ...</li>
    </ul>
  </section>
  <section class="clinical-considerations">
    <h3>Clinical Considerations</h3>
    <p>...</p>
  </section>
  <section class="recommendations">
    <h3>Recommendations</h3>
    <p><strong>Urgency:</strong> [HIGH_URGENCY / MODERATE_URGENCY / LOW_URGENCY]</p>
    <p><strong>Next Steps:</strong> ...</p>
    <p><strong>Patient Goals:</strong> ...</p>
  </section>
</section>

- Use <p> for paragraphs and <ul>/<li> for bullet points.
- Ensure the HTML is well-formed and ready to insert directly via innerHTML.
- Do not include placeholders, apologies, or surrounding commentary.
- Avoid inline styles; rely on semantic tags and <strong> for emphasis where needed.

Write concisely and professionally for a patient audience while meeting the structure above.
"""


# ---- Public API ----


def build_summary_prompt(payload: SubmissionPayload) -> str:
    """
    Render a submitted assessment as the user message for the summarizer.

    Sections with nothing to say are left out, except the red-flag and
    goal sections which always state what was (not) reported.
    """
    lines: List[str] = []
    lines += _patient_section(payload)
    lines += _pain_section(payload)
    lines += _timing_section(payload.timing)
    lines += _checklist_section("AGGRAVATING FACTORS", _aggravator_items(payload.aggravators))
    lines += _checklist_section("RELIEVING FACTORS", _reliever_items(payload.relievers))
    lines += _checklist_section("ASSOCIATED SYMPTOMS", _symptom_items(payload.associated))
    lines += _functional_section(payload.functional)
    lines += _history_section(payload.history)
    lines += _red_flag_section(payload)
    lines += _goals_section(payload)

    return "\n".join(lines) + "\n" + SUMMARY_INSTRUCTIONS


def build_summary_messages(payload: SubmissionPayload) -> List[dict]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_summary_prompt(payload)},
    ]


# ---- Internal helpers ----


def _sanitize(text: Optional[str]) -> str:
    """
    Free text goes into the prompt verbatim except for backticks, which
    would let a patient open a code fence.
    """
    if not isinstance(text, str):
        return ""
    return text.replace("`", "'").strip()


def _humanize(value: str) -> str:
    return value.replace("_", " ")


def _patient_section(payload: SubmissionPayload) -> List[str]:
    lines = [
        "PATIENT INFORMATION:",
        f"- Name: {_sanitize(payload.full_name) or 'Not provided'}",
        f"- Email: {_sanitize(payload.email) or 'Not provided'}",
    ]
    if payload.date_of_birth:
        lines.append(f"- Date of Birth: {_sanitize(payload.date_of_birth)}")
    if payload.phone:
        lines.append(f"- Phone: {_sanitize(payload.phone)}")
    return lines


def _pain_section(payload: SubmissionPayload) -> List[str]:
    lines = ["", "PAIN MAPPING DATA:"]
    if not payload.pain_areas:
        lines.append("No pain areas marked")
        return lines

    for area in payload.pain_areas:
        line = f"- Region: {_sanitize(area.region)}, Intensity: {area.intensity}/10"
        if area.qualities:
            line += f", Quality: {', '.join(area.qualities)}"
        notes = _sanitize(area.notes)
        if notes:
            line += f", Notes: {notes}"
        lines.append(line)
    return lines


def _timing_section(timing: Optional[Timing]) -> List[str]:
    if timing is None:
        return []

    lines = ["", "PAIN TIMING & PATTERN:"]
    if timing.onset:
        lines.append(f"- Onset: {_humanize(timing.onset)}")
    if timing.duration_value:
        lines.append(f"- Duration: {timing.duration_value} {timing.duration_unit or 'months'}")
    if timing.pattern:
        lines.append(f"- Pattern: {_humanize(timing.pattern)}")
    if timing.course:
        lines.append(f"- Course: {timing.course}")
    if timing.time_of_day:
        lines.append(f"- Time of Day: {', '.join(_humanize(t) for t in timing.time_of_day)}")
    if timing.baseline_with_flares:
        line = "- Pattern: Baseline pain with flare-ups"
        if timing.flare_length_value:
            line += f" (flares last {timing.flare_length_value} {timing.flare_length_unit or 'hours'})"
        lines.append(line)
    return lines


def _checklist_section(title: str, items: List[str]) -> List[str]:
    if not items:
        return []
    return ["", f"{title}:"] + [f"- {item}" for item in items]


def _aggravator_items(aggravators: Optional[Aggravators]) -> List[str]:
    if aggravators is None:
        return []
    items = [label for attr, label in _AGGRAVATOR_LABELS if getattr(aggravators, attr)]
    if _sanitize(aggravators.other):
        items.append(_sanitize(aggravators.other))
    return items


def _reliever_items(relievers: Optional[Relievers]) -> List[str]:
    if relievers is None:
        return []
    items = [label for attr, label in _RELIEVER_LABELS if getattr(relievers, attr)]
    if _sanitize(relievers.position):
        items.append(f"position: {_sanitize(relievers.position)}")
    if _sanitize(relievers.other):
        items.append(_sanitize(relievers.other))
    return items


def _symptom_items(associated: Optional[AssociatedSymptoms]) -> List[str]:
    if associated is None:
        return []
    return [label for attr, label in _SYMPTOM_LABELS if getattr(associated, attr)]


def _functional_section(functional: Optional[FunctionalImpact]) -> List[str]:
    if functional is None:
        return []

    lines = ["", "FUNCTIONAL IMPACT:"]
    if functional.limits:
        lines.append(f"- Limited activities: {', '.join(functional.limits)}")
    if functional.sit_minutes is not None:
        lines.append(f"- Can sit: {functional.sit_minutes} minutes")
    if functional.stand_minutes is not None:
        lines.append(f"- Can stand: {functional.stand_minutes} minutes")
    if functional.walk_minutes is not None:
        lines.append(f"- Can walk: {functional.walk_minutes} minutes")
    if functional.missed_days_7 is not None:
        lines.append(f"- Missed work/activities (last 7 days): {functional.missed_days_7} days")
    if functional.missed_days_30 is not None:
        lines.append(f"- Missed work/activities (last 30 days): {functional.missed_days_30} days")
    return lines


def _history_section(history: Optional[HistoryContext]) -> List[str]:
    if history is None:
        return []

    lines = ["", "MEDICAL HISTORY:"]
    if history.recent_injury:
        line = "- Recent injury: Yes"
        if history.injury_date:
            line += f" ({_sanitize(history.injury_date)})"
        if _sanitize(history.mechanism):
            line += f" - {_sanitize(history.mechanism)}"
        lines.append(line)
    if history.repetitive_strain:
        lines.append("- Repetitive strain/overuse: Yes")
    if history.new_activity:
        lines.append("- New activity/change in routine: Yes")
    if history.pregnancy_postpartum:
        lines.append("- Pregnancy/postpartum: Yes")
    if history.recurrent:
        line = "- Recurrent pain: Yes"
        if _sanitize(history.prior_diagnosis):
            line += f" (prior diagnosis: {_sanitize(history.prior_diagnosis)})"
        lines.append(line)
    if history.comorbidities:
        lines.append(f"- Medical conditions: {', '.join(history.comorbidities)}")

    if history.current_meds:
        lines.append("- Current medications:")
        for med in history.current_meds:
            line = f"  * {_sanitize(med.name)}"
            if med.dose:
                line += f" {_sanitize(med.dose)}"
            if med.frequency:
                line += f" {_sanitize(med.frequency)}"
            if med.helpful is not None:
                line += " - Helpful" if med.helpful else " - Not helpful"
            if med.side_effects:
                line += f" - Side effects: {_sanitize(med.side_effects)}"
            lines.append(line)

    if history.tried_treatments:
        lines.append("- Prior treatments:")
        for tx in history.tried_treatments:
            line = f"  * {_sanitize(tx.name)}"
            if tx.helpful is not None:
                line += " - Helpful" if tx.helpful else " - Not helpful"
            if tx.side_effects:
                line += f" - Side effects: {_sanitize(tx.side_effects)}"
            lines.append(line)

    if history.sleep_quality:
        lines.append(f"- Sleep quality: {history.sleep_quality}")
    if history.phq2 is not None:
        lines.append(f"- PHQ-2 (depression screen): {history.phq2}")
    if history.gad2 is not None:
        lines.append(f"- GAD-2 (anxiety screen): {history.gad2}")
    if history.stress_high:
        lines.append("- High stress levels: Yes")
    return lines


def _red_flag_section(payload: SubmissionPayload) -> List[str]:
    answers = payload.red_flags
    lines = ["", "RED FLAG SYMPTOMS:"]

    positive = [label for attr, label in _RED_FLAG_ANSWER_LABELS if getattr(answers, attr)]
    if positive:
        lines += [f"⚠️  {label}: YES" for label in positive]
    else:
        lines.append("✓ No red flag symptoms reported")

    notes = _sanitize(answers.notes)
    if notes:
        lines += ["", f"Additional Notes: {notes}"]
    return lines


def _goals_section(payload: SubmissionPayload) -> List[str]:
    lines = ["", "TREATMENT GOALS:"]
    lines.append(_sanitize(payload.treatment_goals) or "Not specified by patient")

    goals = payload.goals
    if goals is not None:
        if goals.preferred_treatments:
            lines.append(f"- Preferred treatments: {', '.join(goals.preferred_treatments)}")
        if goals.exercise_ready is not None:
            lines.append(f"- Ready for exercise: {'Yes' if goals.exercise_ready else 'No'}")
    return lines
