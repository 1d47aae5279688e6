from marshmallow import Schema, fields, validate, validates, post_load

from models.schemas.common import validate_not_future, store_nested
from models.schemas.species import SUNLIGHT
from models.tree import TREE_STATUSES

_non_negative = validate.Range(min=0, error="Must be greater than or equal to 0.")


class LocationSchema(Schema):
    latitude = fields.Float(
        required=True, validate=validate.Range(min=-90, max=90, error="Valid latitude required")
    )
    longitude = fields.Float(
        required=True, validate=validate.Range(min=-180, max=180, error="Valid longitude required")
    )
    address = fields.String(allow_none=True)
    city = fields.String(allow_none=True)
    state = fields.String(allow_none=True)
    country = fields.String(allow_none=True)
    zip_code = fields.String(data_key="zipCode", allow_none=True)


class LocationUpdateSchema(LocationSchema):
    latitude = fields.Float(validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(validate=validate.Range(min=-180, max=180))


class SiteMetadataSchema(Schema):
    soil_type = fields.String(data_key="soilType", allow_none=True)
    sunlight_exposure = fields.String(data_key="sunlightExposure", validate=validate.OneOf(SUNLIGHT))
    water_source = fields.String(data_key="waterSource", allow_none=True)
    surrounding_environment = fields.String(data_key="surroundingEnvironment", allow_none=True)


class TreeCreateSchema(Schema):
    species_id = fields.String(required=True, data_key="speciesId")
    location = fields.Nested(LocationSchema, required=True)
    planted_date = fields.Date(data_key="plantedDate", allow_none=True)
    height = fields.Float(allow_none=True, validate=_non_negative)
    diameter = fields.Float(allow_none=True, validate=_non_negative)
    circumference = fields.Float(allow_none=True, validate=_non_negative)
    canopy_spread = fields.Float(data_key="canopySpread", allow_none=True, validate=_non_negative)
    status = fields.String(validate=validate.OneOf(TREE_STATUSES))
    health_score = fields.Integer(data_key="healthScore", validate=validate.Range(min=0, max=100))
    tags = fields.List(fields.String())
    notes = fields.String(allow_none=True)
    site_metadata = fields.Nested(SiteMetadataSchema, data_key="metadata")

    @validates("planted_date")
    def _validate_planted_date(self, value, **kwargs):
        validate_not_future(value)

    @post_load
    def _normalize(self, data, **kwargs):
        if "tags" in data:
            data["tags"] = list(dict.fromkeys(t.strip() for t in data["tags"] if t and t.strip()))
        store_nested(data, "site_metadata", SiteMetadataSchema)
        return data


class TreeUpdateSchema(TreeCreateSchema):
    species_id = fields.String(data_key="speciesId")
    location = fields.Nested(LocationUpdateSchema)


class TagsSchema(Schema):
    tags = fields.List(fields.String(validate=validate.Length(min=1)), required=True,
                       validate=validate.Length(min=1, error="tags must be a non-empty list"))


class TreeOutSchema(Schema):
    id = fields.String()
    tree_code = fields.String(data_key="treeCode")
    species_id = fields.String(data_key="speciesId")
    species = fields.Method("get_species")
    location = fields.Method("get_location")
    planted_date = fields.Date(data_key="plantedDate", allow_none=True)
    age = fields.Integer(allow_none=True)
    height = fields.Float(allow_none=True)
    diameter = fields.Float(allow_none=True)
    circumference = fields.Float(allow_none=True)
    canopy_spread = fields.Float(data_key="canopySpread", allow_none=True)
    status = fields.String()
    health_score = fields.Integer(data_key="healthScore")
    tags = fields.List(fields.String())
    notes = fields.String(allow_none=True)
    site_metadata = fields.Raw(data_key="metadata", allow_none=True)
    created_by = fields.String(data_key="createdBy", allow_none=True)
    last_inspection_date = fields.DateTime(data_key="lastInspectionDate", allow_none=True)
    next_inspection_date = fields.DateTime(data_key="nextInspectionDate", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")

    def get_species(self, obj):
        species = getattr(obj, "species", None)
        if species is None:
            return None
        return {
            "id": species.id,
            "commonName": species.common_name,
            "scientificName": species.scientific_name,
        }

    def get_location(self, obj):
        return {
            "latitude": obj.latitude,
            "longitude": obj.longitude,
            "address": obj.address,
            "city": obj.city,
            "state": obj.state,
            "country": obj.country,
            "zipCode": obj.zip_code,
        }
