"""
Grade bands for submitted scores.
"""

MIN_SCORE = 0
MAX_SCORE = 100

# (lowest score in band, grade), highest band first
GRADE_BANDS = [
    (90, 'A+'),
    (80, 'A'),
    (75, 'B+'),
    (70, 'B'),
    (65, 'C+'),
    (60, 'C'),
    (55, 'D+'),
    (50, 'D'),
    (45, 'E'),
]

FAIL_GRADE = 'F'

GRADE_CHOICES = [(grade, grade) for _, grade in GRADE_BANDS] + [(FAIL_GRADE, FAIL_GRADE)]


def derive_grade(score):
    """Calculate grade based on score"""
    for lowest_score, grade in GRADE_BANDS:
        if score >= lowest_score:
            return grade
    return FAIL_GRADE


def is_valid_score(score):
    # bool is an int subclass but never a score
    if isinstance(score, bool) or not isinstance(score, int):
        return False
    return MIN_SCORE <= score <= MAX_SCORE
