"""Selectors and heading vocabulary for the job site's quick-apply UI.

Headings are matched case-insensitively after whitespace normalization;
both the English and Spanish UI strings are recognized.
"""

# Wizard modal
MODAL = ".jobs-easy-apply-modal"
FORM = f"{MODAL} form"
HEADINGS = f"{FORM} h3, {FORM} h4"

ADVANCE_BUTTON = "button[data-live-test-easy-apply-review-button], button[data-easy-apply-next-button]"
SUBMIT_BUTTON = "button[data-live-test-easy-apply-submit-button]"
DISMISS_BUTTON = 'button[aria-label="Dismiss"], button[aria-label="Descartar"]'

# Free-text inputs
TEXT_INPUT_CONTAINER = "div.artdeco-text-input--container"
TEXT_INPUT_LABEL = "label.artdeco-text-input--label"
TEXT_INPUT = 'input.artdeco-text-input--input, input[type="text"]'


def field_input(element_id: str) -> str:
    return f'[id="{element_id}"]'


def field_error(element_id: str) -> str:
    return f'[id="{element_id}-error"] .artdeco-inline-feedback__message'


# Job list / detail pane
JOB_LIST_ITEM = "li.scaffold-layout__list-item"
JOB_CARD = ".job-card-container"
JOB_TITLE = "a.job-card-container__link"
JOB_COMPANY = ".artdeco-entity-lockup__subtitle"
JOB_FOOTER_ITEM = "ul.job-card-list__footer-wrapper li.job-card-container__footer-item"
JOB_DETAILS = ".jobs-search__job-details--wrapper"
QUICK_APPLY_BUTTON = "button.jobs-apply-button"


def job_list_item(job_id: str) -> str:
    return f'li[data-occludable-job-id="{job_id}"]'


# Login
FEED_URL = "https://www.linkedin.com/feed/"
LOGIN_URL = "https://www.linkedin.com/login"
LOGIN_FORM = "form.login__form"
LOGIN_USERNAME = "input#username"
LOGIN_PASSWORD = "input#password"
LOGIN_SUBMIT = 'button[type="submit"]'
PROFILE_MARKER = "img.profile-card-profile-picture"

# Heading vocabulary
CONTACT_INFO_HEADINGS = frozenset({"contact info", "contact information", "información de contacto"})
CURRICULUM_HEADINGS = frozenset({"currículum", "curriculum", "curriculum vitae"})
RESUME_KEYWORD = "resume"
FAVORITE_KEYWORDS = ("favorita", "favorite", "save this job")
QUICK_APPLY_LABELS = frozenset({"easy apply", "solicitud sencilla"})
