"""Human- and machine-readable renderings of an energy balance."""

import json
import xml.etree.ElementTree as ET
from typing import Any, Callable, Dict, Optional

from epbd.core.factors import RenNren
from epbd.core.indicators import EnergyBalance


def _rennren(value: RenNren) -> Dict[str, float]:
    return {"ren": value.ren, "nren": value.nren, "tot": value.tot}


def balance_to_dict(
    balance: EnergyBalance, nearby: Optional[EnergyBalance] = None
) -> Dict[str, Any]:
    """
    Plain data view of a balance. `nearby` is the same balance weighted with
    nearby-perimeter factors; only its indicators are included.
    """
    params = balance.parameters
    carriers = []
    for carrier_balance, weighted in zip(balance.balances, balance.weighted):
        carriers.append(
            {
                "carrier": weighted.carrier.value,
                "energy": carrier_balance.totals(),
                "weighted": {
                    "delivered": _rennren(weighted.delivered),
                    "used_onsite": _rennren(weighted.used_onsite),
                    "exported": _rennren(weighted.exported),
                    "net": _rennren(weighted.net),
                },
            }
        )
    data = {
        "reference_area": params.reference_area,
        "k_exp": params.k_exp,
        "averaging": params.averaging.value,
        "indicators": balance.indicators.as_dict(),
        "weighted_total": _rennren(balance.weighted_total),
        "carriers": carriers,
    }
    if nearby is not None:
        data["nearby_indicators"] = nearby.indicators.as_dict()
    return data


def render_plain(balance: EnergyBalance, nearby: Optional[EnergyBalance] = None) -> str:
    params = balance.parameters
    ind = balance.indicators
    text = (
        f"Area_ref = {params.reference_area:.2f} [m2]\n"
        f"k_exp = {params.k_exp:.2f}\n"
        f"C_ep [kWh/m2.an]: ren = {ind.ren:.1f}, nren = {ind.nren:.1f}, "
        f"tot = {ind.tot:.1f}, RER = {ind.rer:.2f}"
    )
    if nearby is not None:
        text += f"\nRER_nrb = {nearby.indicators.rer:.2f}"
    return text


def render_json(balance: EnergyBalance, nearby: Optional[EnergyBalance] = None) -> str:
    return json.dumps(balance_to_dict(balance, nearby), indent=2)


def render_xml(balance: EnergyBalance, nearby: Optional[EnergyBalance] = None) -> str:
    params = balance.parameters
    ind = balance.indicators
    root = ET.Element("BalanceEPB")
    ET.SubElement(root, "kexp").text = f"{params.k_exp:.2f}"
    ET.SubElement(root, "AreaRef").text = f"{params.reference_area:.2f}"
    epm2 = ET.SubElement(root, "Epm2")
    ET.SubElement(epm2, "tot").text = f"{ind.tot:.1f}"
    ET.SubElement(epm2, "nren").text = f"{ind.nren:.1f}"
    ET.SubElement(epm2, "ren").text = f"{ind.ren:.1f}"
    ET.SubElement(epm2, "rer").text = f"{ind.rer:.2f}"
    if nearby is not None:
        ET.SubElement(epm2, "rer_nrb").text = f"{nearby.indicators.rer:.2f}"

    carriers = ET.SubElement(root, "Vectores")
    for carrier_balance, weighted in zip(balance.balances, balance.weighted):
        node = ET.SubElement(carriers, "Vector", nombre=weighted.carrier.value)
        for name, value in carrier_balance.totals().items():
            ET.SubElement(node, name).text = f"{value:.2f}"
        net = ET.SubElement(node, "Ponderado")
        ET.SubElement(net, "ren").text = f"{weighted.net.ren:.2f}"
        ET.SubElement(net, "nren").text = f"{weighted.net.nren:.2f}"

    ET.indent(root)
    return ET.tostring(root, encoding="unicode")


RENDERERS: Dict[str, Callable[..., str]] = {
    "plain": render_plain,
    "json": render_json,
    "xml": render_xml,
}


def render(
    balance: EnergyBalance, fmt: str = "plain", nearby: Optional[EnergyBalance] = None
) -> str:
    if fmt not in RENDERERS:
        raise ValueError(f"Unknown report format '{fmt}'")
    return RENDERERS[fmt](balance, nearby)
