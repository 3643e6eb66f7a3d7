"""HTML email bodies."""

from __future__ import annotations

from html import escape


def course_enrollment_subject(course_name: str) -> str:
    return f"Successfully Enrolled into {course_name}"


def course_enrollment_email(course_name: str, first_name: str) -> str:
    """Enrollment confirmation body; both values are HTML-escaped."""
    course = escape(course_name)
    name = escape(first_name) or "there"
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>Course Registration Confirmation</title>
  <style>
    body {{ background-color: #ffffff; font-family: Arial, sans-serif; font-size: 16px;
           line-height: 1.4; color: #333333; margin: 0; padding: 0; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; text-align: center; }}
    .message {{ font-size: 18px; font-weight: bold; margin-bottom: 20px; }}
    .body {{ font-size: 16px; margin-bottom: 20px; }}
    .support {{ font-size: 14px; color: #999999; margin-top: 20px; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="message">Course Registration Confirmation</div>
    <div class="body">
      <p>Dear {name},</p>
      <p>You have successfully registered for the course <strong>"{course}"</strong>.
         We are excited to have you as a participant!</p>
      <p>Please log in to the learning platform to access the course materials
         and start your learning journey.</p>
    </div>
    <div class="support">If you have any questions or need assistance, reply to this email.</div>
  </div>
</body>
</html>
"""
