from typing import Any, Dict, List, Optional

import pytest

from nl_search.adapters.memory import InMemorySearchBackend
from nl_search.core.models import CollectionSchema, FieldSchema
from nl_search.schema.introspector import describe_fields

CARS = [
    {"make": "Ford", "model": "Mustang", "year": 2022, "msrp": 38000, "engine_hp": 450, "highway_mpg": 24, "vehicle_style": "Coupe", "market_category": ["Performance"]},
    {"make": "Ford", "model": "Escape", "year": 2023, "msrp": 29000, "engine_hp": 180, "highway_mpg": 34, "vehicle_style": "SUV", "market_category": ["Crossover"]},
    {"make": "Ford", "model": "F-150", "year": 2021, "msrp": 45000, "engine_hp": 400, "highway_mpg": 22, "vehicle_style": "Pickup", "market_category": ["Flex Fuel"]},
    {"make": "Ford", "model": "Bronco", "year": 2024, "msrp": 39500, "engine_hp": 300, "highway_mpg": 21, "vehicle_style": "SUV", "market_category": ["Crossover", "Performance"]},
    {"make": "BMW", "model": "M3", "year": 2022, "msrp": 72000, "engine_hp": 473, "highway_mpg": 23, "vehicle_style": "Sedan", "market_category": ["Luxury", "Performance"]},
    {"make": "BMW", "model": "X3", "year": 2020, "msrp": 44000, "engine_hp": 248, "highway_mpg": 29, "vehicle_style": "SUV", "market_category": ["Luxury", "Crossover"]},
    {"make": "Honda", "model": "Civic (Hybrid)", "year": 2023, "msrp": 28000, "engine_hp": 200, "highway_mpg": 48, "vehicle_style": "Sedan", "market_category": ["Hybrid"]},
    {"make": "Honda", "model": "Accord", "year": 2019, "msrp": 26000, "engine_hp": 192, "highway_mpg": 38, "vehicle_style": "Sedan", "market_category": []},
    {"make": "Toyota", "model": "Prius", "year": 2023, "msrp": 27500, "engine_hp": 194, "highway_mpg": 54, "vehicle_style": "Hatchback", "market_category": ["Hybrid"]},
    {"make": "Kia", "model": "Telluride", "year": 2024, "msrp": 36000, "engine_hp": 291, "highway_mpg": 26, "vehicle_style": "SUV", "market_category": ["Crossover"]},
]

CAR_DESCRIPTIONS = {
    "msrp": "Manufacturer suggested retail price in USD",
    "engine_hp": "Engine horsepower",
    "highway_mpg": "Highway fuel economy in miles per gallon",
}


def car_schema(name: str = "cars") -> CollectionSchema:
    return CollectionSchema(
        name=name,
        fields=[
            FieldSchema(name="make", type="string", facet=True),
            FieldSchema(name="model", type="string"),
            FieldSchema(name="year", type="int32", sort=True),
            FieldSchema(name="msrp", type="int32", sort=True),
            FieldSchema(name="vehicle_style", type="string", facet=True),
            FieldSchema(name="engine_hp", type="float", sort=True),
            FieldSchema(name="highway_mpg", type="int32", sort=True),
            FieldSchema(name="market_category", type="string[]", facet=True),
            FieldSchema(name="vin", type="string", index=False),
        ],
        metadata={"field_descriptions": CAR_DESCRIPTIONS},
    )


class StubLLMClient:
    """Model client returning canned output and recording prompts."""

    def __init__(self, output: Any = None, error: Optional[Exception] = None):
        self.output = output if output is not None else {}
        self.error = error
        self.prompts: List[str] = []
        self.output_models: List[type] = []

    async def parse_query(self, inputs, filter_model) -> Dict[str, Any]:
        self.prompts.append(inputs)
        self.output_models.append(filter_model)
        if self.error is not None:
            raise self.error
        return self.output


@pytest.fixture
def cars() -> List[Dict[str, Any]]:
    return [dict(car) for car in CARS]


@pytest.fixture
def schema() -> CollectionSchema:
    return car_schema()


@pytest.fixture
def backend(schema, cars) -> InMemorySearchBackend:
    backend = InMemorySearchBackend()
    backend.add_collection(schema, cars)
    return backend


@pytest.fixture
def fields(backend, schema):
    return describe_fields(
        schema,
        lambda names, max_values: backend.query_facet_counts("cars", names, max_values),
        max_enum_values=10,
    )
