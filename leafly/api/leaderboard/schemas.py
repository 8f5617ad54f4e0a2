# leafly/api/leaderboard/schemas.py
from marshmallow import Schema, fields


class LeaderboardEntrySchema(Schema):
    rank = fields.Int(required=True)
    user_id = fields.Str(required=True)
    username = fields.Str(required=True)
    profile_image_url = fields.Str(allow_none=True)
    points = fields.Int(required=True)
    level = fields.Int(required=True)
