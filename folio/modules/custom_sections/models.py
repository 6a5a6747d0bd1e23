# Custom Sections
# Admin-configurable content blocks shown on the public site.
# slug is unique; menu_order drives navigation order (ties broken by created_at).

"""
custom_sections: id, name, slug, title, is_active, show_in_navigation,
                 show_hero_button, menu_order, header_image_url,
                 content_left (HTML), content_right (JSON list of blocks),
                 button_text, button_link, created_at, updated_at
"""
