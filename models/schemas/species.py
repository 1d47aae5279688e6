from marshmallow import Schema, fields, validate, post_load

from models.schemas.common import store_nested
from models.species import CONSERVATION_STATUSES

SUNLIGHT = ("full_sun", "partial_shade", "full_shade")


class CharacteristicsSchema(Schema):
    max_height = fields.Float(data_key="maxHeight", allow_none=True)
    max_diameter = fields.Float(data_key="maxDiameter", allow_none=True)
    growth_rate = fields.String(data_key="growthRate", validate=validate.OneOf(("slow", "moderate", "fast")))
    lifespan = fields.Integer(allow_none=True)
    leaf_type = fields.String(
        data_key="leafType", validate=validate.OneOf(("deciduous", "evergreen", "semi-evergreen"))
    )
    flower_color = fields.List(fields.String(), data_key="flowerColor")
    fruit_type = fields.String(data_key="fruitType", allow_none=True)


class TemperatureToleranceSchema(Schema):
    min = fields.Float(allow_none=True)
    max = fields.Float(allow_none=True)


class CultivationSchema(Schema):
    sunlight = fields.String(validate=validate.OneOf(SUNLIGHT))
    soil_type = fields.List(fields.String(), data_key="soilType")
    water_needs = fields.String(data_key="waterNeeds", validate=validate.OneOf(("low", "moderate", "high")))
    hardiness_zone = fields.String(data_key="hardinessZone", allow_none=True)
    temperature_tolerance = fields.Nested(TemperatureToleranceSchema, data_key="temperatureTolerance")


class BenefitsSchema(Schema):
    carbon_sequestration = fields.Float(data_key="carbonSequestration", allow_none=True)
    oxygen_production = fields.Float(data_key="oxygenProduction", allow_none=True)
    air_quality_improvement = fields.Boolean(data_key="airQualityImprovement")
    wildlife_habitat = fields.Boolean(data_key="wildlifeHabitat")
    erosion_control = fields.Boolean(data_key="erosionControl")


class ImageSchema(Schema):
    url = fields.String(required=True)
    description = fields.String(allow_none=True)


class SpeciesCreateSchema(Schema):
    common_name = fields.String(
        required=True, data_key="commonName",
        validate=validate.Length(min=1, max=255, error="Common name is required"),
    )
    scientific_name = fields.String(
        required=True, data_key="scientificName",
        validate=validate.Length(min=1, max=255, error="Scientific name is required"),
    )
    family = fields.String(validate=validate.Length(min=1, max=128))
    genus = fields.String(validate=validate.Length(min=1, max=128))
    native_region = fields.String(data_key="nativeRegion", validate=validate.Length(min=1, max=255))
    description = fields.String(allow_none=True)
    characteristics = fields.Nested(CharacteristicsSchema)
    cultivation_requirements = fields.Nested(CultivationSchema, data_key="cultivationRequirements")
    benefits = fields.Nested(BenefitsSchema)
    images = fields.List(fields.Nested(ImageSchema))
    is_endangered = fields.Boolean(data_key="isEndangered")
    conservation_status = fields.String(
        data_key="conservationStatus", validate=validate.OneOf(CONSERVATION_STATUSES)
    )

    @post_load
    def _store_documents(self, data, **kwargs):
        store_nested(data, "characteristics", CharacteristicsSchema)
        store_nested(data, "cultivation_requirements", CultivationSchema)
        store_nested(data, "benefits", BenefitsSchema)
        store_nested(data, "images", ImageSchema, many=True)
        return data


class SpeciesUpdateSchema(SpeciesCreateSchema):
    common_name = fields.String(data_key="commonName", validate=validate.Length(min=1, max=255))
    scientific_name = fields.String(data_key="scientificName", validate=validate.Length(min=1, max=255))


class SpeciesOutSchema(Schema):
    id = fields.String()
    common_name = fields.String(data_key="commonName")
    scientific_name = fields.String(data_key="scientificName")
    family = fields.String(allow_none=True)
    genus = fields.String(allow_none=True)
    native_region = fields.String(data_key="nativeRegion", allow_none=True)
    description = fields.String(allow_none=True)
    characteristics = fields.Raw(allow_none=True)
    cultivation_requirements = fields.Raw(data_key="cultivationRequirements", allow_none=True)
    benefits = fields.Raw(allow_none=True)
    images = fields.Raw(allow_none=True)
    is_endangered = fields.Boolean(data_key="isEndangered")
    conservation_status = fields.String(data_key="conservationStatus")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
