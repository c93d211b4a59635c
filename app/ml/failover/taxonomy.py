"""
Wildlife Taxonomy Resolver

Maps provider labels onto a local table of common wildlife species so
adapters can attach a scientific name and a seven-rank taxonomy.

Data sources:
- Built-in table of frequently photographed wildlife
- Optional JSON cache with additional entries
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


# Labels containing any of these are considered wildlife...
WILDLIFE_KEYWORDS = (
    "animal", "mammal", "bird", "reptile", "amphibian", "insect", "wildlife",
    "tiger", "lion", "elephant", "bear", "wolf", "deer", "eagle", "owl",
    "snake", "crocodile", "turtle", "butterfly", "bee", "leopard", "cheetah",
    "giraffe", "zebra", "rhinoceros", "panda", "penguin", "fox", "rabbit",
    "squirrel", "chipmunk", "raccoon", "skunk", "otter", "seal", "whale",
    "dolphin", "shark", "fish", "frog", "toad", "lizard", "gecko", "iguana",
    "spider", "ant", "beetle", "dragonfly", "moth", "wasp", "hornet",
)

# ...unless they also contain one of these
DOMESTIC_KEYWORDS = ("dog", "cat", "cow", "horse", "pig", "sheep", "chicken", "duck", "goose")

# Tokens that describe an individual rather than a species; "adult male
# tiger" still resolves to tiger, "sea lion" does not resolve to lion
QUALIFIER_TOKENS = frozenset((
    "adult", "juvenile", "young", "baby", "cub", "calf", "chick",
    "male", "female", "wild", "animal", "wildlife",
))


@dataclass
class WildlifeTaxonomyEntry:
    """Single entry in the wildlife taxonomy table."""
    common_name: str
    scientific_name: str
    kingdom: str
    phylum: str
    class_: str
    order: str
    family: str
    genus: str
    species: str  # Abbreviated epithet, e.g. "P. tigris"
    aliases: List[str] = field(default_factory=list)

    def taxonomy(self) -> Dict[str, str]:
        """Seven-rank taxonomy in the shape exposed to API consumers."""
        return {
            "kingdom": self.kingdom,
            "phylum": self.phylum,
            "class": self.class_,
            "order": self.order,
            "family": self.family,
            "genus": self.genus,
            "species": self.species,
        }


def _mammal(common, scientific, order, family, genus, species, aliases=()):
    return WildlifeTaxonomyEntry(
        common_name=common, scientific_name=scientific,
        kingdom="Animalia", phylum="Chordata", class_="Mammalia",
        order=order, family=family, genus=genus, species=species,
        aliases=list(aliases),
    )


def _animal(common, scientific, phylum, class_, order, family, genus, species, aliases=()):
    return WildlifeTaxonomyEntry(
        common_name=common, scientific_name=scientific,
        kingdom="Animalia", phylum=phylum, class_=class_,
        order=order, family=family, genus=genus, species=species,
        aliases=list(aliases),
    )


class WildlifeTaxonomyResolver:
    """
    Resolves free-text labels to wildlife taxonomy entries.

    Lookup order: exact key, common name / alias index, then a single
    whole-token key match when every other token is a generic qualifier.
    """

    TAXONOMY_DATABASE: Dict[str, WildlifeTaxonomyEntry] = {
        # Felidae
        "tiger": _mammal("Tiger", "Panthera tigris", "Carnivora", "Felidae", "Panthera", "P. tigris",
                         aliases=["bengal tiger", "siberian tiger", "panthera tigris"]),
        "lion": _mammal("Lion", "Panthera leo", "Carnivora", "Felidae", "Panthera", "P. leo",
                        aliases=["african lion", "panthera leo"]),
        "leopard": _mammal("Leopard", "Panthera pardus", "Carnivora", "Felidae", "Panthera", "P. pardus",
                           aliases=["panthera pardus"]),
        "cheetah": _mammal("Cheetah", "Acinonyx jubatus", "Carnivora", "Felidae", "Acinonyx", "A. jubatus",
                           aliases=["acinonyx jubatus"]),

        # Large herbivores
        "elephant": _mammal("Elephant", "Loxodonta africana", "Proboscidea", "Elephantidae", "Loxodonta",
                            "L. africana", aliases=["african elephant", "bush elephant", "loxodonta africana"]),
        "giraffe": _mammal("Giraffe", "Giraffa camelopardalis", "Artiodactyla", "Giraffidae", "Giraffa",
                           "G. camelopardalis", aliases=["northern giraffe", "giraffa camelopardalis"]),
        "zebra": _mammal("Zebra", "Equus quagga", "Perissodactyla", "Equidae", "Equus", "E. quagga",
                         aliases=["plains zebra", "common zebra", "equus quagga"]),
        "rhinoceros": _mammal("Rhinoceros", "Diceros bicornis", "Perissodactyla", "Rhinocerotidae", "Diceros",
                              "D. bicornis", aliases=["rhino", "black rhinoceros", "diceros bicornis"]),
        "deer": _mammal("Deer", "Odocoileus virginianus", "Artiodactyla", "Cervidae", "Odocoileus",
                        "O. virginianus", aliases=["white-tailed deer", "odocoileus virginianus"]),

        # Ursidae / Canidae
        "bear": _mammal("Bear", "Ursus americanus", "Carnivora", "Ursidae", "Ursus", "U. americanus",
                        aliases=["american black bear", "black bear", "ursus americanus"]),
        "panda": _mammal("Panda", "Ailuropoda melanoleuca", "Carnivora", "Ursidae", "Ailuropoda",
                         "A. melanoleuca", aliases=["giant panda", "ailuropoda melanoleuca"]),
        "wolf": _mammal("Wolf", "Canis lupus", "Carnivora", "Canidae", "Canis", "C. lupus",
                        aliases=["gray wolf", "grey wolf", "timber wolf", "canis lupus"]),
        "fox": _mammal("Fox", "Vulpes vulpes", "Carnivora", "Canidae", "Vulpes", "V. vulpes",
                       aliases=["red fox", "vulpes vulpes"]),

        # Birds
        "eagle": _animal("Eagle", "Haliaeetus leucocephalus", "Chordata", "Aves", "Accipitriformes",
                         "Accipitridae", "Haliaeetus", "H. leucocephalus",
                         aliases=["bald eagle", "haliaeetus leucocephalus"]),
        "owl": _animal("Owl", "Bubo bubo", "Chordata", "Aves", "Strigiformes", "Strigidae", "Bubo", "B. bubo",
                       aliases=["eurasian eagle-owl", "eagle owl", "bubo bubo"]),
        "penguin": _animal("Penguin", "Aptenodytes forsteri", "Chordata", "Aves", "Sphenisciformes",
                           "Spheniscidae", "Aptenodytes", "A. forsteri",
                           aliases=["emperor penguin", "aptenodytes forsteri"]),

        # Reptiles
        "snake": _animal("Snake", "Python reticulatus", "Chordata", "Reptilia", "Squamata", "Pythonidae",
                         "Python", "P. reticulatus", aliases=["reticulated python", "python reticulatus"]),
        "crocodile": _animal("Crocodile", "Crocodylus niloticus", "Chordata", "Reptilia", "Crocodilia",
                             "Crocodylidae", "Crocodylus", "C. niloticus",
                             aliases=["nile crocodile", "crocodylus niloticus"]),
        "turtle": _animal("Turtle", "Chelonia mydas", "Chordata", "Reptilia", "Testudines", "Cheloniidae",
                          "Chelonia", "C. mydas", aliases=["green sea turtle", "sea turtle", "chelonia mydas"]),

        # Insects
        "butterfly": _animal("Butterfly", "Danaus plexippus", "Arthropoda", "Insecta", "Lepidoptera",
                             "Nymphalidae", "Danaus", "D. plexippus",
                             aliases=["monarch butterfly", "monarch", "danaus plexippus"]),
        "bee": _animal("Bee", "Apis mellifera", "Arthropoda", "Insecta", "Hymenoptera", "Apidae", "Apis",
                       "A. mellifera", aliases=["honey bee", "honeybee", "apis mellifera"]),
    }

    def __init__(self, cache_path: Optional[str] = None):
        """
        Initialize taxonomy resolver.

        Args:
            cache_path: Path to a JSON file with additional entries
        """
        self._entries: Dict[str, WildlifeTaxonomyEntry] = dict(self.TAXONOMY_DATABASE)
        self._name_index: Dict[str, str] = {}

        if cache_path:
            self._load_cache(cache_path)

        self._build_index()

    def _build_index(self):
        """Build the common-name/alias lookup index."""
        self._name_index.clear()
        for key, entry in self._entries.items():
            self._name_index[entry.common_name.lower()] = key
            for alias in entry.aliases:
                self._name_index[alias.lower()] = key

    def _load_cache(self, cache_path: str):
        """Load additional entries from a JSON cache keyed by common name."""
        path = Path(cache_path)
        if not path.exists():
            logger.warning(f"Taxonomy cache not found: {cache_path}")
            return
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load taxonomy cache: {e}")
            return

        for key, entry_data in data.items():
            entry_data = dict(entry_data)
            if "class" in entry_data:
                entry_data["class_"] = entry_data.pop("class")
            self._entries[key.lower()] = WildlifeTaxonomyEntry(**entry_data)
        logger.info(f"Loaded {len(data)} additional taxonomy entries from cache")

    def resolve(self, label: str) -> Optional[WildlifeTaxonomyEntry]:
        """
        Find the taxonomy entry for a label.

        Args:
            label: Provider label (common or scientific name)

        Returns:
            Matching entry, or None when the label is unknown
        """
        name = " ".join((label or "").lower().split())
        if not name:
            return None

        if name in self._entries:
            return self._entries[name]

        if name in self._name_index:
            return self._entries[self._name_index[name]]

        tokens = name.split()
        matches = [token for token in tokens if token in self._entries]
        if len(matches) != 1:
            return None
        if any(token not in QUALIFIER_TOKENS for token in tokens if token != matches[0]):
            return None
        return self._entries[matches[0]]

    def __len__(self) -> int:
        return len(self._entries)


def is_wildlife_label(label: str) -> bool:
    """True if the label names wildlife and not a domestic animal."""
    lower = label.lower()
    has_wildlife = any(keyword in lower for keyword in WILDLIFE_KEYWORDS)
    has_domestic = any(keyword in lower for keyword in DOMESTIC_KEYWORDS)
    return has_wildlife and not has_domestic


# Singleton instance
_taxonomy_resolver: Optional[WildlifeTaxonomyResolver] = None


def get_wildlife_taxonomy_resolver() -> WildlifeTaxonomyResolver:
    """Get singleton taxonomy resolver instance."""
    global _taxonomy_resolver
    if _taxonomy_resolver is None:
        cache_path = Path(__file__).parent / "data" / "taxonomy_cache.json"
        _taxonomy_resolver = WildlifeTaxonomyResolver(
            cache_path=str(cache_path) if cache_path.exists() else None
        )
    return _taxonomy_resolver
