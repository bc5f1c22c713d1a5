from storefront.connections.mongo import close_mongo, init_mongo, mongo_lifespan
