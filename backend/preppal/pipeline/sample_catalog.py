"""Sample catalog used by the in-memory catalog in development and tests.

Mirrors the seed products loaded into the ``products`` table for demo
environments. Keywords are stored lowercase.
"""

from __future__ import annotations

from decimal import Decimal

from preppal.models.contracts import CatalogRecord

_IMAGE_BASE = "https://res.cloudinary.com/demo/image/upload/v1640995200"


def _record(
    id: int,
    sku: str,
    name: str,
    category: str,
    price: str,
    discount: int,
    stock: int,
    keywords: str,
    image: str | None = None,
    is_active: bool = True,
) -> CatalogRecord:
    return CatalogRecord(
        id=id,
        reference_code=sku,
        name=name,
        category=category,
        price=Decimal(price),
        discount=discount,
        stock=stock,
        is_active=is_active,
        keywords=frozenset(keywords.split()),
        primary_image_ref=f"{_IMAGE_BASE}/{image}" if image else None,
    )


SAMPLE_PRODUCTS: tuple[CatalogRecord, ...] = (
    # Beach / travel
    _record(1, "NEUTRO-SUN-100-3OZ", "Neutrogena Ultra Sheer Dry-Touch Sunscreen SPF 100+",
            "Health & Beauty", "12.99", 19, 150,
            "sunscreen beach travel protection goa vacation", "sunscreen_sample.jpg"),
    _record(2, "DOCK-TOWEL-LG-BLUE", "Dock & Bay Quick Dry Beach Towel",
            "Sports & Outdoors", "19.99", 20, 75,
            "towel beach travel microfiber goa", "beach_towel_sample.jpg"),
    _record(3, "HAVA-BRAZIL-M9-NAVY", "Havaianas Brazil Flip Flops",
            "Clothing", "15.99", 16, 200,
            "flip flops beach footwear brazil goa vacation", "flip_flops_sample.jpg"),
    _record(4, "JOTO-WP-CASE-CLEAR", "JOTO Waterproof Phone Case",
            "Electronics", "9.99", 23, 120,
            "waterproof phone case beach travel protection goa", "phone_case_sample.jpg"),
    _record(5, "ANKER-PC10K-BLACK", "Anker PowerCore 10000 Portable Charger",
            "Electronics", "24.99", 17, 85,
            "charger portable travel electronics anker goa powerbank", "charger_sample.jpg"),
    _record(6, "JJ-FIRSTAID-140PC", "Johnson & Johnson First Aid Kit",
            "Health & Beauty", "16.99", 15, 60,
            "first aid kit safety travel medical emergency goa", "first_aid_sample.jpg"),
    # Party
    _record(7, "AMSCAN-BDAY-BALLOONS-20", "Amscan Happy Birthday Balloons Pack",
            "Home & Garden", "8.99", 18, 100,
            "balloons birthday party decorations celebration", "balloons_sample.jpg"),
    _record(8, "HEFTY-PLATES-50CT-9IN", "Hefty Disposable Paper Plates 50 Count",
            "Home & Garden", "6.99", 22, 150,
            "plates paper disposable party tableware birthday", "plates_sample.jpg"),
    _record(9, "SOLO-RED-CUPS-50CT-16OZ", "Solo Red Plastic Cups 50 Count",
            "Home & Garden", "5.99", 25, 200,
            "cups plastic party red tableware birthday", "cups_sample.jpg"),
    _record(10, "CC-BDAY-CANDLES-24CT", "Creative Converting Birthday Candles",
            "Home & Garden", "3.99", 20, 180,
            "candles birthday party decorations", "candles_sample.jpg"),
    _record(11, "BEISTLE-HATS-8CT-ASST", "Beistle Party Hats Assorted Colors",
            "Home & Garden", "7.99", 0, 90,
            "hats party decorations birthday", "party_hats_sample.jpg"),
    _record(12, "COKE-VARIETY-12CT-12OZ", "Coca-Cola Soda Variety Pack 12 Cans",
            "Food & Grocery", "12.99", 0, 120,
            "soda beverages party drinks birthday cola", "soda_sample.jpg"),
    # Camping
    _record(13, "COLEMAN-SUNDOME-4P", "Coleman Sundome 4-Person Tent",
            "Sports & Outdoors", "89.99", 0, 45,
            "tent camping outdoor coleman family hiking", "tent_sample.jpg"),
    _record(14, "TETON-CELSIUS-REG", "TETON Sports Celsius Sleeping Bag",
            "Sports & Outdoors", "34.99", 0, 70,
            "sleeping bag camping outdoor teton", "sleeping_bag_sample.jpg"),
    _record(15, "COLEMAN-STOVE-2BURN", "Coleman Portable Camping Stove",
            "Home & Garden", "45.99", 0, 55,
            "stove camping cooking outdoor propane coleman", "stove_sample.jpg"),
    _record(16, "ENERGIZER-LED-FLASH", "Energizer LED Flashlight",
            "Sports & Outdoors", "12.99", 19, 150,
            "flashlight led camping safety energizer outdoor", "flashlight_sample.jpg"),
    _record(17, "OFF-DEEPWOODS-6OZ", "OFF! Deep Woods Insect Repellent",
            "Sports & Outdoors", "8.99", 18, 120,
            "insect repellent camping outdoor mosquito deet", "insect_repellent_sample.jpg"),
    _record(18, "COLEMAN-CHAIR-QUAD", "Coleman Portable Camping Chairs",
            "Sports & Outdoors", "29.99", 14, 80,
            "chair chairs camping outdoor portable coleman", "camping_chair_sample.jpg"),
    _record(19, "COLEMAN-LANTERN-LED", "Coleman Lantern Battery Powered",
            "Sports & Outdoors", "19.97", 20, 0,
            "lantern camping led battery coleman outdoor", "lantern_sample.jpg"),
    # Household
    _record(20, "TIDE-LIQUID-ORIGINAL-92", "Tide Liquid Laundry Detergent",
            "Home & Garden", "11.97", 14, 120,
            "laundry detergent cleaning household tide", "tide_sample.jpg"),
    _record(21, "GV-NAPKINS-200CT", "Great Value Paper Napkins",
            "Home & Garden", "1.98", 20, 300,
            "napkins paper party household", "napkins_sample.jpg"),
    _record(22, "LAYS-CLASSIC-CHIPS", "Lay's Classic Potato Chips",
            "Food & Grocery", "3.98", 11, 200,
            "chips snacks snack party potato lays", "chips_sample.jpg"),
    # Discontinued
    _record(23, "AMSCAN-BDAY-BANNER-OLD", "Amscan Birthday Banner (discontinued)",
            "Home & Garden", "4.99", 0, 0,
            "banner birthday party decorations", is_active=False),
)
