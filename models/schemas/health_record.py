from marshmallow import Schema, fields, validate, validates, post_load

from models.health_record import HEALTH_STATUSES, SEVERITIES
from models.schemas.common import validate_not_future, to_naive_utc, store_nested


class FindingSchema(Schema):
    name = fields.String(required=True)
    severity = fields.String(validate=validate.OneOf(SEVERITIES))


class TreatmentSchema(Schema):
    prescribed = fields.String(allow_none=True)
    applied = fields.String(allow_none=True)
    application_date = fields.DateTime(data_key="applicationDate", allow_none=True)
    next_treatment_date = fields.DateTime(data_key="nextTreatmentDate", allow_none=True)


class MeasurementsSchema(Schema):
    height = fields.Float(allow_none=True)
    diameter = fields.Float(allow_none=True)
    canopy_spread = fields.Float(data_key="canopySpread", allow_none=True)
    leaf_density = fields.String(data_key="leafDensity", validate=validate.OneOf(("sparse", "moderate", "dense")))


class EnvironmentSchema(Schema):
    temperature = fields.Float(allow_none=True)
    humidity = fields.Float(allow_none=True)
    soil_moisture = fields.String(data_key="soilMoisture", validate=validate.OneOf(("dry", "moist", "wet")))
    weather_conditions = fields.String(data_key="weatherConditions", allow_none=True)


class HealthRecordCreateSchema(Schema):
    tree_id = fields.String(required=True, data_key="treeId")
    inspection_date = fields.DateTime(required=True, data_key="inspectionDate")
    status = fields.String(required=True, validate=validate.OneOf(HEALTH_STATUSES))
    health_score = fields.Integer(
        required=True, data_key="healthScore", validate=validate.Range(min=0, max=100)
    )
    symptoms = fields.List(fields.String())
    diseases = fields.List(fields.Nested(FindingSchema))
    pests = fields.List(fields.Nested(FindingSchema))
    treatment = fields.Nested(TreatmentSchema)
    measurements = fields.Nested(MeasurementsSchema)
    environmental_factors = fields.Nested(EnvironmentSchema, data_key="environmentalFactors")
    notes = fields.String(validate=validate.Length(min=1))
    recommendations = fields.String(allow_none=True)
    follow_up_required = fields.Boolean(data_key="followUpRequired")
    follow_up_date = fields.DateTime(data_key="followUpDate", allow_none=True)

    @validates("inspection_date")
    def _validate_inspection_date(self, value, **kwargs):
        validate_not_future(value)

    @post_load
    def _normalize(self, data, **kwargs):
        for key in ("inspection_date", "follow_up_date"):
            if key in data:
                data[key] = to_naive_utc(data[key])
        store_nested(data, "diseases", FindingSchema, many=True)
        store_nested(data, "pests", FindingSchema, many=True)
        store_nested(data, "treatment", TreatmentSchema)
        store_nested(data, "measurements", MeasurementsSchema)
        store_nested(data, "environmental_factors", EnvironmentSchema)
        return data


class HealthRecordUpdateSchema(HealthRecordCreateSchema):
    tree_id = fields.String(data_key="treeId", dump_only=True)
    inspection_date = fields.DateTime(data_key="inspectionDate")
    status = fields.String(validate=validate.OneOf(HEALTH_STATUSES))
    health_score = fields.Integer(data_key="healthScore", validate=validate.Range(min=0, max=100))


class HealthRecordOutSchema(Schema):
    id = fields.String()
    tree_id = fields.String(data_key="treeId")
    tree = fields.Method("get_tree")
    inspection_date = fields.DateTime(data_key="inspectionDate")
    status = fields.String()
    health_score = fields.Integer(data_key="healthScore")
    symptoms = fields.Raw()
    diseases = fields.Raw()
    pests = fields.Raw()
    treatment = fields.Raw(allow_none=True)
    measurements = fields.Raw(allow_none=True)
    environmental_factors = fields.Raw(data_key="environmentalFactors", allow_none=True)
    notes = fields.String(allow_none=True)
    recommendations = fields.String(allow_none=True)
    follow_up_required = fields.Boolean(data_key="followUpRequired")
    follow_up_date = fields.DateTime(data_key="followUpDate", allow_none=True)
    inspected_by = fields.String(data_key="inspectedBy", allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")

    def get_tree(self, obj):
        tree = getattr(obj, "tree", None)
        if tree is None:
            return None
        return {"id": tree.id, "treeCode": tree.tree_code, "status": tree.status}
