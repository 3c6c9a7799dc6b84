from typing import Dict, List, Optional
from pydantic import Field

from app.domain.models.common import CamelModel, IdStr, Money, id_field


class Product(CamelModel):
    id: IdStr = id_field()
    name: str = ""
    event_id: Optional[IdStr] = None
    stock: int = 0
    nominal_price: Money = "0.00"
    # consumptionTypeId -> signed cents
    supplement: Dict[str, int] = Field(default_factory=dict)
    promotions: List[IdStr] = Field(default_factory=list)
    is_active: bool = True

    model_config = {"frozen": True}

    def supplement_for(self, consumption_type_id: str) -> int:
        return self.supplement.get(consumption_type_id, 0)


class ConsumptionType(CamelModel):
    id: IdStr = id_field()
    name: str
    event_id: Optional[IdStr] = None
    is_active: bool = True

    model_config = {"frozen": True}
