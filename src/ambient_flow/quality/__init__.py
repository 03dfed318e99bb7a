from .rubric import NoteSignals, RubricCheck, RubricOutcome, evaluate_rubric, note_signals

__all__ = ["NoteSignals", "RubricCheck", "RubricOutcome", "evaluate_rubric", "note_signals"]
