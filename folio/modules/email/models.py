# Contact Messages
# Every accepted contact form submission is stored before any mail is attempted.
# Mail credentials come from the site_settings row, then from the environment.

"""
contact_messages: id, name, email, phone, subject, message, is_read,
                  replied_at, created_at, updated_at

site_settings (mail columns): form_enabled, notification_email,
    auto_reply_enabled, auto_reply_subject, auto_reply_message,
    email_service_type (gmail | resend), gmail_user, gmail_app_password,
    resend_api_key
"""
