from storefront.utils.config.env import Settings, settings
