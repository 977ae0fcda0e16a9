"""
WTForms for the application.
Only the unified directory listing takes user input (query parameters).
"""
from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import Optional, Length, Regexp


class DirectoryFilterForm(FlaskForm):
    """Query parameters of the unified listing page (/directory?state=&city=&county=&features=)."""

    class Meta:
        # GET form read from the query string
        csrf = False

    state = StringField(
        'State',
        validators=[Optional(), Length(max=64, message="State must be at most 64 characters")]
    )
    city = StringField(
        'City',
        validators=[Optional(), Length(max=128, message="City must be at most 128 characters")]
    )
    county = StringField(
        'County',
        validators=[Optional(), Length(max=128, message="County must be at most 128 characters")]
    )
    features = StringField(
        'Features',
        validators=[
            Optional(),
            Regexp(r'^[0-9]+(,[0-9]+)*$', message="Features must be comma-separated numeric ids")
        ]
    )

    def feature_ids(self):
        if not self.features.data:
            return []
        return [int(part) for part in self.features.data.split(',')]
