"""PetPulse triage backend: symptom notes in, bounded triage dialogue out."""

__version__ = "0.1.0"
