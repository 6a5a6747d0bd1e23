# Object Storage
# Files live in MinIO/S3 buckets, not in the database. Bucket visibility is the
# bucket policy: a public-read policy allows anonymous GET through
# /storage/{bucket}/public/{path}.

"""
Default buckets, created at boot when missing:
gallery-images, slideshow-images, logos, custom-fonts, fotos, custom-sections

Upload result: {path, id (ETag), fullPath ("{bucket}/{path}")}
"""
