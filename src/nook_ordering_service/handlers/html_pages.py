"""HTML pages served to browsers opening links from verification and reset email."""

import json
from html import escape

SUCCESS_COLOR = "#4CAF50"
ERROR_COLOR = "#dc2626"
WARNING_COLOR = "#d97706"
RESET_COLOR = "#2563eb"

_BASE_STYLE = """
    body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; margin: 0; padding: 0;
           background: #f4f4f7; min-height: 100vh; display: flex; align-items: center;
           justify-content: center; }
    .container { max-width: 500px; width: 100%; background: white; border-radius: 10px;
                 box-shadow: 0 10px 30px rgba(0,0,0,0.1); overflow: hidden; }
    .header { background: ACCENT; color: white; padding: 30px; text-align: center; }
    .header h1 { margin: 0; font-size: 28px; font-weight: 300; }
    .content { padding: 40px; text-align: center; }
    .content h2 { color: #333; margin-bottom: 20px; }
    .content p { color: #666; margin-bottom: 20px; }
    .form-group { margin-bottom: 20px; text-align: left; }
    label { display: block; margin-bottom: 5px; color: #333; font-weight: 500; }
    input[type="password"] { width: 100%; padding: 12px; border: 2px solid #e5e7eb;
                             border-radius: 5px; font-size: 16px; box-sizing: border-box; }
    .hint { font-size: 14px; color: #666; margin-top: 5px; }
    button { width: 100%; background: ACCENT; color: white; padding: 15px; border: none;
             border-radius: 25px; font-weight: bold; font-size: 16px; cursor: pointer; }
    button:disabled { opacity: 0.6; cursor: not-allowed; }
    .message { padding: 15px; border-radius: 5px; margin-bottom: 20px; display: none; }
    .message.success { background: #d1fae5; color: #065f46; }
    .message.error { background: #fee2e2; color: #991b1b; }
"""


def _page(title: str, business_name: str, accent: str, content: str, script: str = "") -> str:
    name = escape(business_name)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(title)} - {name}</title>
  <style>{_BASE_STYLE.replace("ACCENT", accent)}</style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{name}</h1></div>
    <div class="content">{content}</div>
  </div>
  {script}
</body>
</html>"""


def _message_page(title: str, business_name: str, accent: str, heading: str, text: str) -> str:
    return _page(title, business_name, accent, f"<h2>{heading}</h2><p>{text}</p>")


# --- Email verification -------------------------------------------------------------------------


def verification_success_page(business_name: str) -> str:
    name = escape(business_name)
    return _message_page(
        "Email Verified",
        business_name,
        SUCCESS_COLOR,
        "Email Verified Successfully!",
        f"Your email address has been verified. You can now log in to your account and enjoy "
        f"all the features of {name}.</p><p>You can close this window and return to the app.",
    )


def verification_invalid_page(business_name: str) -> str:
    return _message_page(
        "Invalid Verification Link",
        business_name,
        ERROR_COLOR,
        "Invalid Verification Link",
        "This verification link is invalid or malformed. Please check your email for the correct "
        "link or request a new verification email.",
    )


def verification_expired_page(business_name: str) -> str:
    return _message_page(
        "Verification Link Expired",
        business_name,
        WARNING_COLOR,
        "Verification Link Expired",
        "This verification link has expired or has already been used. Please request a new "
        "verification email from the app.",
    )


def verification_error_page(business_name: str) -> str:
    return _message_page(
        "Verification Error",
        business_name,
        ERROR_COLOR,
        "Verification Error",
        "An error occurred while verifying your email. Please try again or contact support.",
    )


# --- Password reset -----------------------------------------------------------------------------


def reset_invalid_page(business_name: str) -> str:
    return _message_page(
        "Invalid Reset Link",
        business_name,
        ERROR_COLOR,
        "Invalid Reset Link",
        "This password reset link is invalid or malformed. Please request a new password reset.",
    )


def reset_expired_page(business_name: str) -> str:
    return _message_page(
        "Reset Link Expired",
        business_name,
        WARNING_COLOR,
        "Reset Link Expired",
        "This password reset link has expired or has already been used. Please request a new "
        "password reset.",
    )


def reset_error_page(business_name: str) -> str:
    return _message_page(
        "Reset Error",
        business_name,
        ERROR_COLOR,
        "Reset Error",
        "An error occurred while loading the password reset form. Please try again later.",
    )


def reset_form_page(business_name: str, token: str, submit_path: str = "/api/auth/reset-password") -> str:
    """Render the form that posts ``{token, new_password}`` as JSON to ``submit_path``."""
    content = f"""
      <h2>Reset Your Password</h2>
      <div id="message" class="message"></div>
      <form id="resetForm">
        <input type="hidden" name="token" value="{escape(token, quote=True)}">
        <div class="form-group">
          <label for="new_password">New Password</label>
          <input type="password" id="new_password" name="new_password" required minlength="8">
          <div class="hint">Minimum 8 characters required</div>
        </div>
        <div class="form-group">
          <label for="confirm_password">Confirm New Password</label>
          <input type="password" id="confirm_password" name="confirm_password" required minlength="8">
        </div>
        <button type="submit" id="submitBtn">Reset Password</button>
      </form>"""

    script = f"""<script>
    const form = document.getElementById('resetForm');
    const messageEl = document.getElementById('message');
    const submitBtn = document.getElementById('submitBtn');

    function showMessage(text, type) {{
      messageEl.textContent = text;
      messageEl.className = 'message ' + type;
      messageEl.style.display = 'block';
    }}

    form.addEventListener('submit', async function (e) {{
      e.preventDefault();
      const newPassword = document.getElementById('new_password').value;
      const confirmPassword = document.getElementById('confirm_password').value;
      const token = form.querySelector('input[name="token"]').value;

      if (newPassword.length < 8) {{
        showMessage('Password must be at least 8 characters long', 'error');
        return;
      }}
      if (newPassword !== confirmPassword) {{
        showMessage('Passwords do not match', 'error');
        return;
      }}

      submitBtn.disabled = true;
      submitBtn.textContent = 'Resetting...';
      try {{
        const response = await fetch({json.dumps(submit_path)}, {{
          method: 'POST',
          headers: {{ 'Content-Type': 'application/json' }},
          body: JSON.stringify({{ token: token, new_password: newPassword }})
        }});
        const data = await response.json();
        if (data.return_code === 'SUCCESS') {{
          showMessage('Password reset successfully! You can now log in with your new password.', 'success');
          form.style.display = 'none';
        }} else {{
          showMessage(data.message || 'Password reset failed', 'error');
        }}
      }} catch (error) {{
        showMessage('Network error. Please try again.', 'error');
      }}
      submitBtn.disabled = false;
      submitBtn.textContent = 'Reset Password';
    }});
  </script>"""
    return _page("Reset Password", business_name, RESET_COLOR, content, script)
