"""
Brazilian reference data: states, regions and the option lists the
marketplace uses for profiles and campaign targeting.
"""

STATES = [
    'AC', 'AL', 'AP', 'AM', 'BA', 'CE', 'DF', 'ES', 'GO', 'MA', 'MT', 'MS', 'MG',
    'PA', 'PB', 'PR', 'PE', 'PI', 'RJ', 'RN', 'RS', 'RO', 'RR', 'SC', 'SP', 'SE', 'TO',
]

REGIONS = {
    'sudeste': ['SP', 'RJ', 'MG', 'ES'],
    'sul': ['PR', 'SC', 'RS'],
    'nordeste': ['BA', 'CE', 'PE', 'MA', 'PB', 'RN', 'PI', 'AL', 'SE'],
    'norte': ['AM', 'PA', 'AC', 'RO', 'RR', 'AP', 'TO'],
    'centro_oeste': ['GO', 'MT', 'MS', 'DF'],
}

REGION_LABELS = {
    'sudeste': 'Sudeste',
    'sul': 'Sul',
    'nordeste': 'Nordeste',
    'norte': 'Norte',
    'centro_oeste': 'Centro-Oeste',
}

NICHES = [
    'tech', 'lifestyle', 'beauty', 'education', 'finance', 'health', 'travel',
    'food', 'entertainment', 'sports', 'fashion', 'gaming', 'pets', 'parenting',
]

PLATFORMS = ['instagram', 'tiktok', 'youtube', 'twitter', 'linkedin', 'twitch']

GENDERS = ['masculino', 'feminino', 'outro', 'prefiro_nao_informar']

AGE_RANGES = ['18-24', '25-34', '35-44', '45-54', '55+']

COMPANY_CATEGORIES = [
    'saude', 'beleza', 'moda', 'tecnologia', 'alimentos', 'bebidas', 'fitness',
    'casa', 'pets', 'infantil', 'servicos', 'outros',
]


def get_region_for_state(state):
    """Return the region key for a UF, or None when unknown."""
    if not state:
        return None
    state = state.upper()
    for region, states in REGIONS.items():
        if state in states:
            return region
    return None


def expand_regions(targets):
    """
    Turn a mixed list of UFs and region keys into a set of UFs.

    ['sul', 'SP'] -> {'PR', 'SC', 'RS', 'SP'}
    """
    states = set()
    for target in targets or []:
        if not target:
            continue
        key = target.lower()
        if key in REGIONS:
            states.update(REGIONS[key])
        else:
            states.add(target.upper())
    return states
