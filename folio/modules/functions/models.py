# Server Functions
# Named operations invoked with POST /functions/{name}, mirroring hosted edge
# functions so clients call them the same way on every backend.

"""
translate-content   - translate one text, optionally saving it under a key
bulk-translate      - translate many items and upsert them into translations
add-ui-translations - upsert literal UI strings
send-contact-email  - same flow as POST /email/send-contact (public)

translations: unique (translation_key, language_code)
"""
