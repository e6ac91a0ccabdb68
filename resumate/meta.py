"""App identity for the resumate CLI."""

APP_ID = "resumate"
PURPOSE = "Turn diary notes into resume-ready experience records (draft -> refined -> archived)"
