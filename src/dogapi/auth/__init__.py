"""Authentication and authorization.

Learn: Users register with username/password (bcrypt-hashed) and log in
for a signed JWT carrying their id and role. Every /api/dogs request
goes through the bearer-token gateway, and every per-image operation
then goes through the ownership guard: only the uploader may read,
replace, or delete an image.
"""
