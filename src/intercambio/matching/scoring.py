"""
Score de compatibilidad entre dos usuarios.

30 puntos por cada idioma que A enseña y B aprende, 30 por cada idioma
que B enseña y A aprende, un bonus único de 10 si alguna dirección
tiene más de un idioma, y tope en 100. Se cuenta por dirección, nunca
sobre la unión de idiomas.
"""

from intercambio.models import User

POINTS_PER_LANGUAGE = 30
MULTI_LANGUAGE_BONUS = 10
MAX_SCORE = 100


def teachable_languages(teacher: User, learner: User) -> list[str]:
    """Idiomas de `teacher` que `learner` está aprendiendo, en orden declarado."""
    return [code for code in teacher.native_languages if learner.is_learning(code)]


def first_teachable_language(teacher: User, learner: User) -> str:
    """
    Primer idioma (en orden declarado) que `teacher` puede enseñarle a `learner`.

    No considera el nivel de dominio. Devuelve "" si no hay ninguno.
    """
    for code in teacher.native_languages:
        if learner.is_learning(code):
            return code
    return ""


def is_mutual_exchange(user_a: User, user_b: User) -> bool:
    """True si ambos pueden enseñarse al menos un idioma mutuamente."""
    return bool(first_teachable_language(user_a, user_b)) and bool(
        first_teachable_language(user_b, user_a)
    )


def compatibility_score(user_a: User, user_b: User) -> int:
    """
    Calcula el score de compatibilidad (0-100).

    Es simétrico: compatibility_score(a, b) == compatibility_score(b, a).
    """
    a_to_b = len(teachable_languages(user_a, user_b))
    b_to_a = len(teachable_languages(user_b, user_a))

    score = POINTS_PER_LANGUAGE * a_to_b + POINTS_PER_LANGUAGE * b_to_a

    if a_to_b > 1 or b_to_a > 1:
        score += MULTI_LANGUAGE_BONUS

    return min(score, MAX_SCORE)
