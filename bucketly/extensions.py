"""Flask extension instances, bound to the app in create_app."""

from flask_mail import Mail
from flask_wtf.csrf import CSRFProtect

# Sends the account verification email.
mail = Mail()
# JSON clients read their token from /auth/csrf-token.
csrf = CSRFProtect()
