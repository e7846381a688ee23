LANDING = "landing"
FIELD_PROJECT = "field-project"
COMMUNITY_ENGAGEMENT = "community-engagement"
CO_CURRICULAR = "co-curricular"
ATTENDANCE = "attendance"
MANAGE_CLASSES = "manage-classes"

ALL_PAGES = frozenset({
    LANDING,
    FIELD_PROJECT,
    COMMUNITY_ENGAGEMENT,
    CO_CURRICULAR,
    ATTENDANCE,
    MANAGE_CLASSES,
})

FIRST_YEAR_CLASSES = ("FYIT", "FYSD")
SECOND_YEAR_CLASSES = ("SYIT", "SYSD")

DEFAULT_STUDENT_PAGES = frozenset({LANDING, CO_CURRICULAR})


def get_accessible_pages(user):
    """Pages the user may open.

    Works on anything exposing ``role`` and, for students, ``class_name``
    and ``semester`` (the Student model, or the session user).
    """
    role = getattr(user, "role", None)
    if role == "teacher":
        return ALL_PAGES

    student_class = getattr(user, "class_name", None)
    semester = getattr(user, "semester", None)

    # first years see attendance inside the co-curricular page
    if student_class in FIRST_YEAR_CLASSES:
        return DEFAULT_STUDENT_PAGES

    if student_class in SECOND_YEAR_CLASSES:
        if semester == 3:
            return frozenset({LANDING, FIELD_PROJECT, CO_CURRICULAR, COMMUNITY_ENGAGEMENT})
        if semester == 4:
            return frozenset({LANDING, COMMUNITY_ENGAGEMENT, CO_CURRICULAR})

    return DEFAULT_STUDENT_PAGES


def can_access_page(user, page):
    return page in get_accessible_pages(user)
