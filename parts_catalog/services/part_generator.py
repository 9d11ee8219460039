"""
Synthetic part records for demos and load testing

Generated parents carry 0-10 child placeholders with no main part reference;
linking them to real parts happens after insert (see reconciler).
"""
import string
from datetime import timezone
from typing import List, Optional, Set

from faker import Faker

from parts_catalog.models.part_models import (
    MAX_FILE_REFERENCES,
    ChildPartRef,
    DocumentationRecord,
    DocumentationType,
    Part,
)

ALPHANUMERIC = string.ascii_uppercase + string.digits

CATEGORIES = ["Electronics", "Mechanical", "Hydraulics", "Electrical", "Structural"]
SUPPLIERS = ["ABC Corp", "XYZ Industries", "Global Parts", "Tech Solutions", "Engineering Supplies"]
MATERIALS = ["Steel", "Aluminum", "Plastic", "Copper", "Titanium", "Composite"]
PRODUCT_ADJECTIVES = [
    "Compact", "Durable", "Heavy-Duty", "Precision", "Reinforced",
    "Sealed", "Insulated", "Modular", "High-Torque", "Low-Profile",
]
PRODUCT_NOUNS = [
    "Bracket", "Valve", "Bearing", "Relay", "Coupling", "Gasket",
    "Actuator", "Connector", "Housing", "Sensor", "Fitting", "Spring",
]

MAX_CHILD_PARTS = 10


class PartGenerator:
    """Fabricates Part records with Faker"""

    def __init__(self, seed: Optional[int] = None):
        self.fake = Faker()
        if seed is not None:
            self.fake.seed_instance(seed)

    def maybe(self, value_factory, default=None):
        """Half the time produce a value, otherwise the default"""
        return value_factory() if self.fake.boolean() else default

    def tags(self, choices: List[str]) -> List[str]:
        """1-3 distinct tags"""
        count = self.fake.random_int(min=1, max=3)
        return list(self.fake.random_elements(choices, length=count, unique=True))

    def part_number(self, taken: Set[str]) -> str:
        while True:
            number = self.fake.bothify("P??-####", letters=ALPHANUMERIC)
            if number not in taken:
                taken.add(number)
                return number

    def product_name(self) -> str:
        return f"{self.fake.random_element(PRODUCT_ADJECTIVES)} {self.fake.random_element(PRODUCT_NOUNS)}"

    def specifications(self):
        specs = {
            "weight": f"{round(self.fake.random.uniform(0.1, 10), 1)} kg",
            "material": self.fake.random_element(MATERIALS),
            "dimensions": "x".join(str(self.fake.random_int(min=5, max=100)) for _ in range(3)) + " mm",
            "color": self.fake.color_name(),
        }
        voltage = self.maybe(lambda: f"{self.fake.random_int(min=3, max=240)}V")
        if voltage is not None:
            specs["voltage"] = voltage
        return specs

    def documentation(self) -> DocumentationRecord:
        file_count = self.fake.random_int(min=0, max=MAX_FILE_REFERENCES)
        return DocumentationRecord(
            type=self.fake.random_element(list(DocumentationType)),
            value=self.fake.paragraph(nb_sentences=3),
            date_added=self.fake.date_time_between(start_date="-2y", end_date="now", tzinfo=timezone.utc),
            file_references=[
                self.fake.file_name(extension=self.fake.random_element(["pdf", "docx"]))
                for _ in range(file_count)
            ],
            answered_by=self.maybe(self.fake.name),
        )

    def child_placeholder(self) -> ChildPartRef:
        return ChildPartRef(
            part_number=self.fake.bothify("CP-????", letters=ALPHANUMERIC),
            part_name=self.product_name(),
            supplier=self.maybe(lambda: self.fake.random_element(SUPPLIERS)),
            quantity=self.fake.random_int(min=1, max=10),
            main_part_id=None,
        )

    def part(self, taken: Set[str]) -> Part:
        categories = self.tags(CATEGORIES)
        return Part(
            part_number=self.part_number(taken),
            part_name=f"{self.product_name()} Component",
            part_description=self.fake.paragraph(nb_sentences=2),
            alternative_part_numbers=self.maybe(
                lambda: [self.fake.bothify("ALT-??????", letters=ALPHANUMERIC) for _ in range(2)],
                default=[],
            ),
            category=categories,
            sub_category=[f"{c} Type {self.fake.random_uppercase_letter()}" for c in categories],
            supplier=self.tags(SUPPLIERS),
            supplier_contact=self.maybe(self.fake.email),
            internal_contact=self.maybe(self.fake.name),
            specifications=self.specifications(),
            documentation=[self.documentation()],
            child_parts=[
                self.child_placeholder()
                for _ in range(self.fake.random_int(min=0, max=MAX_CHILD_PARTS))
            ],
        )

    def generate(self, count: int, existing_numbers: Optional[Set[str]] = None) -> List[Part]:
        """Generate count parts with part numbers unique within the batch and existing_numbers"""
        taken = set(existing_numbers or ())
        return [self.part(taken) for _ in range(count)]
